"""
Synchronous wrapper functions for vfrplan.

The planning entry points are async because they talk to remote forecast
and elevation services. These wrappers run them to completion for callers
that cannot use async/await.

Usage:
    # Instead of this async code:
    profile = await plan_route(waypoints)

    # Use this sync code:
    from vfrplan.sync import plan_route_sync
    profile = plan_route_sync(waypoints)
"""

import asyncio
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Mapping, Optional, Sequence, TypeVar

if TYPE_CHECKING:
    from .planner import FlightProfile
    from .windows import VfrWindowSearchResult

R = TypeVar("R")


class AsyncSyncBridge:
    """Runs async functions to completion from synchronous code."""

    @staticmethod
    def run_async(
        async_fn: Callable[..., Awaitable[R]],
        args: tuple = (),
        kwargs: Optional[dict] = None,
    ) -> R:
        """Run an async function synchronously.

        Args:
            async_fn: Async function to run
            args: Positional arguments for the function
            kwargs: Keyword arguments for the function

        Returns:
            Result of running the async function

        Raises:
            RuntimeError: If called from within an existing event loop
        """
        if kwargs is None:
            kwargs = {}

        try:
            asyncio.get_running_loop()
        except RuntimeError:
            pass
        else:
            raise RuntimeError(
                "Cannot use sync version from within an existing asyncio event loop. "
                "Use the async version instead."
            )

        return asyncio.run(async_fn(*args, **kwargs))


def plan_route_sync(waypoints: Sequence[Any], **kwargs: Any) -> "FlightProfile":
    """Synchronous version of plan_route.

    Args:
        waypoints: Route waypoints in order
        **kwargs: Passed through to plan_route

    Returns:
        FlightProfile for the route

    Examples:
        >>> profile = plan_route_sync(waypoints, departure_time=1700000000000)
        >>> [p.condition for p in profile.points if p.waypoint_id]
    """
    from .planner import plan_route

    return AsyncSyncBridge.run_async(plan_route, args=(waypoints,), kwargs=kwargs)


def fetch_route_weather_sync(waypoints: Sequence[Any], **kwargs: Any) -> Mapping[str, Any]:
    """Synchronous version of fetch_route_weather."""
    from .planner import fetch_route_weather

    return AsyncSyncBridge.run_async(fetch_route_weather, args=(waypoints,), kwargs=kwargs)


def find_vfr_windows_sync(waypoints: Sequence[Any], **kwargs: Any) -> "VfrWindowSearchResult":
    """Synchronous version of find_vfr_windows."""
    from .windows import find_vfr_windows

    return AsyncSyncBridge.run_async(find_vfr_windows, args=(waypoints,), kwargs=kwargs)
