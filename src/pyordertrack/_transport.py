"""JSON-over-HTTP transport for the order backend."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from pyordertrack._constants import USER_AGENT
from pyordertrack._redact import redact_for_log
from pyordertrack.config import TrackConfig
from pyordertrack.exceptions import TrackTransportError
from pyordertrack.session import SessionContext

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by endpoint modules.

    Having a protocol here makes it easy to pass test doubles while
    keeping the production implementation (`HttpTransport`) concrete.
    """

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        json_body: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        ...


def _extract_message(text: str) -> str | None:
    """Pull a ``message`` field out of an error body, if it is JSON."""
    try:
        body = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return None
    if isinstance(body, dict):
        message = body.get("message") or body.get("error")
        if isinstance(message, str) and message.strip():
            return message.strip()
    return None


class HttpTransport:
    """HTTP transport that adds auth headers and maps failures to exceptions."""

    def __init__(
        self,
        config: TrackConfig,
        http_session: aiohttp.ClientSession,
        session_context: SessionContext | None = None,
    ) -> None:
        self._config = config
        self._http = http_session
        self._context = session_context
        self._timeout = aiohttp.ClientTimeout(total=config.http_timeout)

    def _build_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {
            "accept": "application/json",
            "content-type": "application/json",
            "user-agent": USER_AGENT,
        }
        if self._context is not None:
            headers.update(self._context.auth_headers())
        return headers

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        json_body: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Send a JSON request and return the decoded JSON object.

        Raises
        ------
        TrackTransportError
            On network failure, timeout, non-2xx status or a body that is
            not a JSON object. ``server_message`` carries the backend's
            ``message`` field when there is one.
        """
        url = f"{self._config.base_url}{endpoint}"
        data = json.dumps(json_body, separators=(",", ":")) if json_body is not None else None

        _logger.debug("%s %s body=%s", method, url, redact_for_log(json_body))

        try:
            async with self._http.request(
                method,
                url,
                data=data,
                headers=self._build_headers(),
                timeout=self._timeout,
            ) as resp:
                text = await resp.text()
                if resp.status < 200 or resp.status >= 300:
                    raise TrackTransportError(
                        f"HTTP {resp.status} from {endpoint}: {text[:200]}",
                        status_code=resp.status,
                        endpoint=endpoint,
                        server_message=_extract_message(text),
                    )
        except TrackTransportError:
            raise
        except TimeoutError as exc:
            raise TrackTransportError(
                f"Request to {endpoint} timed out after {self._config.http_timeout}s",
                endpoint=endpoint,
            ) from exc
        except aiohttp.ClientError as exc:
            raise TrackTransportError(
                f"Request to {endpoint} failed: {exc}",
                endpoint=endpoint,
            ) from exc

        if not text.strip():
            return {}

        try:
            body_json = json.loads(text)
        except json.JSONDecodeError as exc:
            raise TrackTransportError(
                f"Invalid JSON from {endpoint}: {text[:200]}",
                status_code=resp.status,
                endpoint=endpoint,
            ) from exc

        if not isinstance(body_json, dict):
            raise TrackTransportError(
                f"Expected a JSON object from {endpoint}",
                status_code=resp.status,
                endpoint=endpoint,
            )

        _logger.debug("%s %s -> %s %s", method, endpoint, resp.status, redact_for_log(body_json))
        return body_json

