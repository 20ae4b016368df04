"""
Prometheus Metrics Middleware.

Records latency and status for every API call, labelled by route
template so scanners probing random URLs do not create new series.
Multipart uploads (bill images, voice notes) also have their size
recorded.
"""

import time
from typing import Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from app.core.metrics import track_http_request, track_upload_size

UNMATCHED_ROUTE = "unmatched"


class MetricsMiddleware(BaseHTTPMiddleware):
    """Track request count, duration and upload size."""

    EXCLUDED_PATHS = {"/metrics", "/health"}

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
        finally:
            route = self._route_label(request)
            track_http_request(
                method=request.method,
                route=route,
                status_code=status_code,
                duration_seconds=time.perf_counter() - start_time,
            )
            upload_size = self._upload_size(request)
            if upload_size is not None:
                track_upload_size(route, upload_size)

        return response

    @staticmethod
    def _route_label(request: Request) -> str:
        """
        Metrics label for a request.

        Args:
            request: Request whose routing has completed.

        Returns:
            str: Route template such as "/api/history", or "unmatched".
        """
        route = request.scope.get("route")
        return getattr(route, "path", None) or UNMATCHED_ROUTE

    @staticmethod
    def _upload_size(request: Request) -> Optional[int]:
        """
        Declared body size of a multipart upload.

        Args:
            request: Incoming request.

        Returns:
            Optional[int]: Content-Length for multipart bodies, None otherwise.
        """
        if not request.headers.get("content-type", "").startswith("multipart/form-data"):
            return None
        length = request.headers.get("content-length", "")
        return int(length) if length.isdigit() else None
