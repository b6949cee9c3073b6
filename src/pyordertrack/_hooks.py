"""Explicit observer registration.

Consumers register handlers once and get back a callable that removes
them. A handler that raises is logged and skipped; it never breaks the
event loop or the other handlers.
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import Callable
from typing import Generic, ParamSpec

P = ParamSpec("P")

_logger = logging.getLogger(__name__)


class Hook(Generic[P]):
    """A named list of handlers invoked in registration order."""

    def __init__(self, name: str) -> None:
        self._name = name
        self._handlers: list[Callable[P, None]] = []

    def __call__(self, handler: Callable[P, None]) -> Callable[[], None]:
        """Register *handler*; returns an unsubscribe callable."""
        self._handlers.append(handler)

        def _unsubscribe() -> None:
            with contextlib.suppress(ValueError):
                self._handlers.remove(handler)

        return _unsubscribe

    def __len__(self) -> int:
        return len(self._handlers)

    def emit(self, *args: P.args, **kwargs: P.kwargs) -> None:
        for handler in list(self._handlers):
            try:
                handler(*args, **kwargs)
            except Exception:
                _logger.debug("%s handler failed", self._name, exc_info=True)

    def clear(self) -> None:
        self._handlers.clear()
