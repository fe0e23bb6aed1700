# ===== app/api/middleware/rate_limit_middleware.py =====
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
import threading
import time

PUBLIC_WRITE_PREFIX = "/api/v1/appointments"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Per-client sliding window on public booking writes (create, cancel and
    reschedule through the manage link). Reads and admin routes pass through.

    Counters live in process memory, so the limit is per worker.
    """

    def __init__(self, app, max_requests: int = 10, window_seconds: float = 60.0):
        super().__init__(app)
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.request_times = {}
        self._lock = threading.Lock()

    async def dispatch(self, request: Request, call_next):
        if request.method != "POST" or not request.url.path.startswith(PUBLIC_WRITE_PREFIX):
            return await call_next(request)

        client_id = request.client.host if request.client else "unknown"
        current_time = time.time()

        with self._lock:
            recent = [
                t for t in self.request_times.get(client_id, [])
                if current_time - t < self.window_seconds
            ]

            if len(recent) >= self.max_requests:
                self.request_times[client_id] = recent
                retry_after = max(1, int(self.window_seconds - (current_time - recent[0])))
                return JSONResponse(
                    status_code=429,
                    content={
                        "error": "Too many requests, please try again later.",
                        "code": "RATE_LIMITED",
                    },
                    headers={"Retry-After": str(retry_after)}
                )

            recent.append(current_time)
            self.request_times[client_id] = recent

        return await call_next(request)
