#!/usr/bin/env python3
"""Follow one order live from the command line.

Loads a persisted session, fetches the order, joins its update channel
and prints every location, status, route and connection change. With
``--simulate`` it also drives a simulated agent from the store to the
customer (agent/admin sessions only).
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Allow running from repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pyordertrack import SessionContext, TrackClient, TrackConfig, TrackError  # noqa: E402
from pyordertrack.models import GeoPoint, OrderStatus, RouteInfo  # noqa: E402
from pyordertrack.tracking import ViewportFit  # noqa: E402

_LOG = logging.getLogger("track_order")


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Watch live location and status updates for one order.",
    )
    parser.add_argument("order_id", help="Order task id, e.g. TASK-1001.")
    parser.add_argument(
        "--session-file",
        type=Path,
        default=Path(".pyordertrack-session.json"),
        help="Session JSON written by SessionContext.save().",
    )
    parser.add_argument(
        "--duration",
        type=int,
        default=0,
        help="Maximum runtime in seconds (0 = run until Ctrl+C).",
    )
    parser.add_argument(
        "--route",
        action="store_true",
        help="Fetch and print the driving route.",
    )
    parser.add_argument(
        "--simulate",
        action="store_true",
        help="Move a simulated agent from the store to the customer.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logs.",
    )
    return parser.parse_args()


def _print_location(point: GeoPoint) -> None:
    print(f"[track] agent    : {point.latitude:.6f}, {point.longitude:.6f}")


def _print_status(status: OrderStatus) -> None:
    print(f"[track] status   : {status}")


def _print_route(route: RouteInfo | None) -> None:
    print(f"[track] route    : {route.summary() if route is not None else 'unavailable'}")


def _print_bounds(fit: ViewportFit) -> None:
    b = fit.bounds
    print(f"[track] bounds   : ({b.south:.5f}, {b.west:.5f}) - ({b.north:.5f}, {b.east:.5f})")


async def _run(args: argparse.Namespace) -> int:
    context = SessionContext()
    context.load(args.session_file)
    if not context.is_logged_in:
        print(f"[track] No valid session in {args.session_file}", file=sys.stderr)
        return 2

    async with TrackClient(TrackConfig.from_env(), session_context=context) as client:
        view = await client.track_order(args.order_id, show_route=args.route)
        view.on_location_changed(_print_location)
        view.on_status_changed(_print_status)
        view.on_route_changed(_print_route)
        view.on_bounds_changed(_print_bounds)
        view.on_connection_changed(lambda status: print(f"[track] channel  : {status}"))

        _print_status(view.status)
        if view.location is not None:
            _print_location(view.location)

        simulator = None
        if args.simulate:
            order = await client.get_order(args.order_id)
            simulator = client.route_simulator(
                order,
                on_location=view.observe_local,
                on_error=lambda message: print(f"[track] error    : {message}", file=sys.stderr),
            )
            await simulator.start_auto()

        try:
            if args.duration > 0:
                await asyncio.sleep(args.duration)
            else:
                await asyncio.Event().wait()
        finally:
            if simulator is not None:
                await simulator.stop_auto()
            await view.unmount()
    return 0


def _main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        return asyncio.run(_run(args))
    except KeyboardInterrupt:
        return 0
    except TrackError as exc:
        _LOG.debug("Tracking failed", exc_info=True)
        print(f"[track] Failed: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(_main())
