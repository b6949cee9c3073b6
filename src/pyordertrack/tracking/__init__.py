"""Map reconciliation layer.

This package is the single place where local samples, channel pushes and
prop values are merged into the render state a map front end consumes:
effective agent location, visible markers, route and viewport.
"""

from pyordertrack.tracking.events import LocationObservation, LocationSource
from pyordertrack.tracking.policy import (
    StatusBadge,
    agent_marker_visible,
    should_engage_realtime,
    status_badge,
    store_marker_visible,
)
from pyordertrack.tracking.reconciler import (
    MapReconciler,
    Marker,
    MarkerKind,
    MarkerSet,
    TrackingViewProps,
    ViewportFit,
)

__all__ = [
    "LocationObservation",
    "LocationSource",
    "MapReconciler",
    "Marker",
    "MarkerKind",
    "MarkerSet",
    "StatusBadge",
    "TrackingViewProps",
    "ViewportFit",
    "agent_marker_visible",
    "should_engage_realtime",
    "status_badge",
    "store_marker_visible",
]
