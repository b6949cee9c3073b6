"""Normalized location observations.

Every location source (device samples, channel pushes, view props) is
turned into a :class:`LocationObservation` before the reconciler looks
at it.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from pyordertrack.models.position import GeoPoint


class LocationSource(StrEnum):
    LOCAL = "local"
    CHANNEL = "channel"
    PROPS = "props"


class LocationObservation(BaseModel):
    """A location seen by the reconciler, accepted or not."""

    model_config = ConfigDict(frozen=True)

    point: GeoPoint
    source: LocationSource
    observed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
