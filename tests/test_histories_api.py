from fastapi.testclient import TestClient

from shortlink_app.services.access_recorder import background_tasks


def visit(client, code, user_agent):
    client.get(f"/{code}", follow_redirects=False, headers={"User-Agent": user_agent})


class TestHistoriesAPI:
    def _setup(self, client, auth_headers):
        for code in ("ha", "hb"):
            client.post(
                "/api/shortens",
                json={"original_url": f"https://example.com/{code}", "short_code": code},
                headers=auth_headers,
            )
        visit(client, "ha", "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0) Mobile Safari/604.1")
        visit(client, "ha", "Mozilla/5.0 (Windows NT 10.0) Chrome/120.0 Safari/537.36")
        visit(client, "hb", "curl/8.4.0")
        client.portal.call(background_tasks.drain)

    def test_list_histories(self, client: TestClient, auth_headers):
        self._setup(client, auth_headers)

        response = client.get("/api/histories", headers=auth_headers)
        assert response.status_code == 200

        body = response.json()
        assert body["meta"]["total_items"] == 3
        assert {item["short_code"] for item in body["data"]} == {"ha", "hb"}

    def test_filter_by_short_code(self, client: TestClient, auth_headers):
        self._setup(client, auth_headers)

        body = client.get("/api/histories", params={"short_code": "ha"}, headers=auth_headers).json()

        assert body["meta"]["total_items"] == 2
        assert {item["device_type"] for item in body["data"]} == {"Mobile", "Desktop"}

    def test_delete_histories(self, client: TestClient, auth_headers):
        self._setup(client, auth_headers)
        items = client.get("/api/histories", headers=auth_headers).json()["data"]
        ids = ",".join(str(item["id"]) for item in items[:2])

        response = client.delete("/api/histories", params={"ids": ids}, headers=auth_headers)
        assert response.status_code == 204

        body = client.get("/api/histories", headers=auth_headers).json()
        assert body["meta"]["total_items"] == 1

    def test_deleting_url_removes_its_history(self, client: TestClient, auth_headers):
        self._setup(client, auth_headers)

        client.delete("/api/shortens/ha", headers=auth_headers)

        body = client.get("/api/histories", headers=auth_headers).json()
        assert [item["short_code"] for item in body["data"]] == ["hb"]

    def test_requires_auth(self, client: TestClient):
        assert client.get("/api/histories").status_code == 401
