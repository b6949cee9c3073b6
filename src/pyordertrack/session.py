"""Authenticated session state and the context that owns it.

The application shell creates one :class:`SessionContext`, attaches a
:class:`Session` after login (or loads a persisted one), and passes the
context to :class:`pyordertrack.client.TrackClient`. Nothing in the
library reads credentials from global state.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from pyordertrack.exceptions import TrackConfigError
from pyordertrack.models.status import ActorRole

_logger = logging.getLogger(__name__)


class UserInfo(BaseModel):
    """The logged-in user."""

    model_config = ConfigDict(frozen=True, extra="ignore", str_strip_whitespace=True)

    name: str
    email: str
    role: ActorRole = ActorRole.CUSTOMER


class Session(BaseModel):
    """Immutable session state after a successful login.

    Parameters
    ----------
    token : str
        Bearer token sent in the ``Authorization`` header.
    user : UserInfo
        The authenticated user.
    created_at : float
        Epoch seconds when the session was created. Wall-clock time so
        persisted sessions keep a meaningful age.
    ttl : float or None
        Time-to-live in seconds; ``None`` means the session never expires
        on its own.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_default=True,
        str_strip_whitespace=True,
    )

    token: str = Field(min_length=1)
    user: UserInfo
    created_at: float = Field(default_factory=time.time)
    ttl: float | None = None

    @property
    def is_expired(self) -> bool:
        """Whether the session has exceeded its TTL."""
        if self.ttl is None:
            return False
        return (time.time() - self.created_at) >= self.ttl

    @property
    def age(self) -> float:
        """Seconds since the session was created."""
        return time.time() - self.created_at


class SessionContext:
    """Holder for the current session with an explicit attach/load lifecycle."""

    def __init__(self, session: Session | None = None) -> None:
        self._session = session

    @property
    def session(self) -> Session | None:
        """The attached session, or ``None`` when logged out or expired."""
        session = self._session
        if session is not None and session.is_expired:
            _logger.debug("Session for %s expired", session.user.email)
            self._session = None
            return None
        return session

    @property
    def is_logged_in(self) -> bool:
        return self.session is not None

    @property
    def role(self) -> ActorRole | None:
        session = self.session
        return session.user.role if session is not None else None

    def attach(self, session: Session) -> None:
        """Make *session* the current session (after login)."""
        self._session = session

    def detach(self) -> None:
        """Forget the current session (logout)."""
        self._session = None

    def auth_headers(self) -> dict[str, str]:
        """``Authorization`` header for the current session, if any."""
        session = self.session
        if session is None:
            return {}
        return {"Authorization": f"Bearer {session.token}"}

    def save(self, path: str | Path) -> None:
        """Persist the current session as JSON (no-op when logged out)."""
        session = self.session
        target = Path(path)
        if session is None:
            target.unlink(missing_ok=True)
            return
        target.write_text(session.model_dump_json(), encoding="utf-8")

    def load(self, path: str | Path) -> Session | None:
        """Attach a session persisted with :meth:`save`.

        A missing file leaves the context logged out. A corrupt file
        raises :class:`TrackConfigError`.
        """
        source = Path(path)
        if not source.exists():
            return None
        try:
            session = Session.model_validate_json(source.read_text(encoding="utf-8"))
        except ValidationError as exc:
            raise TrackConfigError(f"Invalid session file {source}: {exc}") from exc
        self._session = session
        return self.session
