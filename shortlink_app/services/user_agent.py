"""
User agent classification for access history.

Plain ordered substring checks on the lowercased header. Order matters:
tablet is tested before mobile, Edge before Chrome, Chrome before Safari
(Edge and Chrome both advertise "Safari/").
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class UserAgentInfo:
    device_type: Optional[str] = None
    os: Optional[str] = None
    browser: Optional[str] = None


def detect_os(ua: str) -> Optional[str]:
    if "android" in ua:
        return "Android"
    if "iphone" in ua or "ipad" in ua or "ipod" in ua:
        return "iOS"
    if "windows" in ua:
        return "Windows"
    if "mac os" in ua or "macos" in ua:
        return "macOS"
    if "linux" in ua:
        return "Linux"
    return None


def detect_device(ua: str) -> str:
    if "ipad" in ua or "tablet" in ua:
        return "Tablet"
    if "mobile" in ua or "android" in ua:
        return "Mobile"
    return "Desktop"


def detect_browser(ua: str) -> Optional[str]:
    if "edg/" in ua or "edge/" in ua:
        return "Edge"
    if "chrome/" in ua and "edg" not in ua:
        return "Chrome"
    if "firefox/" in ua:
        return "Firefox"
    if "safari/" in ua and "chrome" not in ua:
        return "Safari"
    if "opera/" in ua or "opr/" in ua:
        return "Opera"
    return None


def parse_user_agent(user_agent: Optional[str]) -> UserAgentInfo:
    """Classify a User-Agent header. Unrecognised parts stay None."""
    if not user_agent:
        return UserAgentInfo()

    ua = user_agent.lower()
    return UserAgentInfo(
        device_type=detect_device(ua),
        os=detect_os(ua),
        browser=detect_browser(ua),
    )
