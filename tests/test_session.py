from __future__ import annotations

from pathlib import Path

import pytest

from pyordertrack.exceptions import TrackConfigError
from pyordertrack.models.status import ActorRole
from pyordertrack.session import Session, SessionContext, UserInfo


def _make_session(**overrides: object) -> Session:
    values: dict[str, object] = {
        "token": "token-1",
        "user": UserInfo(name="Ravi", email="ravi@example.com", role=ActorRole.AGENT),
    }
    values.update(overrides)
    return Session.model_validate(values)


def test_logged_out_context_has_no_auth_headers() -> None:
    context = SessionContext()
    assert not context.is_logged_in
    assert context.role is None
    assert context.auth_headers() == {}


def test_attached_session_provides_bearer_header() -> None:
    context = SessionContext()
    context.attach(_make_session())

    assert context.is_logged_in
    assert context.role == ActorRole.AGENT
    assert context.auth_headers() == {"Authorization": "Bearer token-1"}

    context.detach()
    assert context.auth_headers() == {}


def test_expired_session_is_dropped() -> None:
    context = SessionContext(_make_session(created_at=0.0, ttl=60.0))
    assert context.session is None
    assert not context.is_logged_in


def test_session_rejects_empty_token() -> None:
    with pytest.raises(ValueError):
        _make_session(token="  ")


def test_save_and_load_roundtrip(tmp_path: Path) -> None:
    path = tmp_path / "session.json"
    SessionContext(_make_session()).save(path)

    context = SessionContext()
    loaded = context.load(path)

    assert loaded is not None
    assert loaded.token == "token-1"
    assert context.role == ActorRole.AGENT


def test_save_when_logged_out_removes_file(tmp_path: Path) -> None:
    path = tmp_path / "session.json"
    path.write_text("{}", encoding="utf-8")
    SessionContext().save(path)
    assert not path.exists()


def test_load_missing_file_stays_logged_out(tmp_path: Path) -> None:
    context = SessionContext()
    assert context.load(tmp_path / "missing.json") is None
    assert not context.is_logged_in


def test_load_corrupt_file_raises(tmp_path: Path) -> None:
    path = tmp_path / "session.json"
    path.write_text('{"token": ""}', encoding="utf-8")
    with pytest.raises(TrackConfigError):
        SessionContext().load(path)
