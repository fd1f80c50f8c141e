"""
Tests for the fire-and-forget access recording path.
"""
import asyncio

from starlette.requests import Request

from shortlink_app.errors import LookupFailedError
from shortlink_app.geoip.strategies import GeoIpInfo, GeoIpStrategy, NullGeoIp
from shortlink_app.models import AccessHistory
from shortlink_app.services.access_recorder import (
    UNKNOWN_IP,
    AccessRecorder,
    TaskSet,
    extract_client_ip,
)
from shortlink_app.services.url_service import URLService


def make_request(headers=None, client=("10.0.0.9", 5555)):
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/abc",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    }
    return Request(scope)


class FixedGeoIp(GeoIpStrategy):
    async def lookup(self, ip):
        return GeoIpInfo(country="Iceland", region="", province="", city="Reykjavik", isp="Example")


class BrokenGeoIp(GeoIpStrategy):
    async def lookup(self, ip):
        raise LookupFailedError("backend down")


class TestExtractClientIp:
    def test_forwarded_for_first_entry(self):
        request = make_request({"X-Forwarded-For": "203.0.113.5, 10.0.0.1", "X-Real-IP": "198.51.100.2"})
        assert extract_client_ip(request) == "203.0.113.5"

    def test_real_ip(self):
        request = make_request({"X-Real-IP": "198.51.100.2"})
        assert extract_client_ip(request) == "198.51.100.2"

    def test_trusted_platform_header(self):
        request = make_request({"CF-Connecting-IP": "192.0.2.44"})
        assert extract_client_ip(request, "CF-Connecting-IP") == "192.0.2.44"
        assert extract_client_ip(request) == "10.0.0.9"

    def test_peer_address(self):
        assert extract_client_ip(make_request()) == "10.0.0.9"

    def test_unknown(self):
        assert extract_client_ip(make_request(client=None)) == UNKNOWN_IP

    def test_blank_forwarded_for_is_skipped(self):
        request = make_request({"X-Forwarded-For": " , 10.0.0.1"})
        assert extract_client_ip(request) == "10.0.0.9"


class TestTaskSet:
    def test_keeps_reference_until_done(self):
        async def scenario():
            tasks = TaskSet()
            gate = asyncio.Event()

            async def work():
                await gate.wait()

            tasks.spawn(work())
            assert len(tasks) == 1
            gate.set()
            await tasks.drain()
            await asyncio.sleep(0)
            return len(tasks)

        assert asyncio.run(scenario()) == 0

    def test_drain_cancels_stragglers(self):
        async def scenario():
            tasks = TaskSet()
            task = tasks.spawn(asyncio.sleep(60))
            await tasks.drain(timeout=0.01)
            await asyncio.sleep(0)
            return task.cancelled()

        assert asyncio.run(scenario()) is True


class TestAccessRecorder:
    def _url(self, db_session, code="rec"):
        return asyncio.run(URLService(db_session).create("https://example.com", short_code=code))

    def test_records_enriched_history(self, db_session, session_factory):
        url = self._url(db_session)
        recorder = AccessRecorder(session_factory, FixedGeoIp(), TaskSet())

        async def scenario():
            recorder.schedule(url.id, url.short_code, "203.0.113.5", user_agent="Mozilla/5.0 (iPad)", referer="https://ref.example")
            await recorder.tasks.drain()

        asyncio.run(scenario())

        history = db_session.query(AccessHistory).one()
        assert history.url_id == url.id
        assert history.short_code == "rec"
        assert history.ip_address == "203.0.113.5"
        assert history.country == "Iceland"
        assert history.region is None
        assert history.city == "Reykjavik"
        assert history.device_type == "Tablet"
        assert history.os == "iOS"
        assert history.referer == "https://ref.example"

    def test_geo_failure_still_records(self, db_session, session_factory):
        url = self._url(db_session)
        recorder = AccessRecorder(session_factory, BrokenGeoIp(), TaskSet())

        asyncio.run(recorder.record(url.id, url.short_code, "unknown"))

        history = db_session.query(AccessHistory).one()
        assert history.ip_address == "unknown"
        assert history.country is None

    def test_storage_failure_is_logged_not_raised(self, db_session, session_factory, caplog):
        recorder = AccessRecorder(session_factory, NullGeoIp(), TaskSet())

        # No such parent row: the foreign key rejects the insert
        with caplog.at_level("ERROR"):
            asyncio.run(recorder.record(424242, "ghost", "203.0.113.5"))

        assert db_session.query(AccessHistory).count() == 0
        assert "Failed to record access for code: ghost" in caplog.text
