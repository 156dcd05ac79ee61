"""Identity-provider session glue.

Placeholder for the OAuth flow: codes, tokens and user info are mock values.
The session is persisted so separate CLI invocations share it. Nothing in
the vault core depends on it.
"""

import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

MOCK_AUTH_CODE = "mock-code-123"


class AuthError(Exception):
    """Login failed or the stored session is unusable."""


@dataclass(frozen=True)
class AuthUser:
    """Authenticated user identity."""

    email: str
    name: str
    picture: str | None = None


def start_login() -> str:
    """Begin the login flow and return a short-lived authorization code."""
    return MOCK_AUTH_CODE


def exchange_code_for_token(code: str) -> str:
    """Exchange an authorization code for an access token."""
    if not code:
        raise AuthError("Authorization code cannot be empty")
    return f"mock-token-for-{code}"


def get_user_info(token: str) -> AuthUser:
    """Fetch the identity behind an access token."""
    if not token:
        raise AuthError("Access token cannot be empty")
    logger.debug("Fetching user info for token %s...", token[:8])
    return AuthUser(email="test@example.com", name="Test User")


class AuthSession:
    """Login state persisted as JSON."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.token: str | None = None
        self.user: AuthUser | None = None

    @property
    def logged_in(self) -> bool:
        return self.token is not None

    def load(self) -> "AuthSession":
        """Load the stored session, if any.

        Raises:
            AuthError: If the session file exists but cannot be parsed.
        """
        if not self.path.exists():
            return self
        try:
            with open(self.path, "r") as f:
                data: dict[str, Any] = json.load(f)
            user = data.get("user")
            self.token = data.get("token")
            self.user = AuthUser(**user) if user else None
        except (OSError, json.JSONDecodeError, TypeError, AttributeError) as e:
            raise AuthError(f"Cannot read session {self.path}: {e}") from e
        return self

    def login(self) -> AuthUser:
        """Run the login flow and persist the resulting session."""
        code = start_login()
        self.token = exchange_code_for_token(code)
        self.user = get_user_info(self.token)
        self._save()
        return self.user

    def logout(self) -> None:
        """Forget the session."""
        self.token = None
        self.user = None
        self.path.unlink(missing_ok=True)
        logger.info("Logged out")

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = {"token": self.token, "user": asdict(self.user) if self.user else None}
        with open(self.path, "w") as f:
            json.dump(data, f, indent=2)
