from __future__ import annotations

from starlette.requests import Request

UNMATCHED_ROUTE = "unmatched"


def safe_route_label(request: Request) -> str:
    """
    Return the matched route template (e.g. /topics/{topic_id}/messages).

    Raw paths carry topic ids and are never used as labels; requests that did not
    match a route (404) get a fixed value.
    """

    route = request.scope.get("route")
    path = getattr(route, "path", None)
    if isinstance(path, str) and path:
        return path
    return UNMATCHED_ROUTE
