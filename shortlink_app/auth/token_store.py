import logging
import secrets
import threading
import time
from typing import Callable, Dict, Optional, Tuple

from shortlink_app.errors import UnauthorizedError

logger = logging.getLogger(__name__)

TOKEN_BYTES = 16  # 32 hex characters


class TokenStore:
    """
    In-memory login tokens: token -> (username, expires_at).

    One instance per process, handed out by a dependency. Expired tokens
    are swept whenever a token is issued or verified.
    """

    def __init__(self, ttl: int, clock: Callable[[], float] = time.time):
        self.ttl = ttl
        self.clock = clock
        self._tokens: Dict[str, Tuple[str, float]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)

    def issue(self, username: str) -> str:
        token = secrets.token_hex(TOKEN_BYTES)
        with self._lock:
            self._sweep(self.clock())
            self._tokens[token] = (username, self.clock() + self.ttl)
        return token

    def verify(self, token: str) -> str:
        """
        Return the username a token was issued to.

        Raises:
            UnauthorizedError: unknown, revoked or expired token
        """
        with self._lock:
            now = self.clock()
            entry = self._tokens.get(token)
            self._sweep(now)

        if entry is None:
            raise UnauthorizedError("Invalid token")
        username, expires_at = entry
        if expires_at <= now:
            raise UnauthorizedError("Token expired")
        return username

    def revoke(self, token: str) -> bool:
        with self._lock:
            return self._tokens.pop(token, None) is not None

    def sweep_expired(self) -> int:
        with self._lock:
            return self._sweep(self.clock())

    def _sweep(self, now: float) -> int:
        expired = [token for token, (_, expires_at) in self._tokens.items() if expires_at <= now]
        for token in expired:
            del self._tokens[token]
        if expired:
            logger.debug("Swept %d expired token(s)", len(expired))
        return len(expired)


def check_credentials(username: str, password: str, expected_username: str, expected_password: str) -> bool:
    """Constant-time comparison of both fields"""
    user_ok = secrets.compare_digest(username.encode(), expected_username.encode())
    password_ok = secrets.compare_digest(password.encode(), expected_password.encode())
    return user_ok and password_ok
