import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from src.utils.logging import Logger


class LogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        LOGGER = Logger("FastAPIApp")

        request_id = str(uuid.uuid4())
        request.state.id = request_id

        # Skip logging for health endpoint
        if request.url.path in ("/", "/api/health", "/api/ping"):
            return await call_next(request)

        extra = {
            "method": request.method,
            "url": str(request.url),
            "request_id": request_id,
            "ip": request.client.host if request.client else "unknown",
        }

        LOGGER.info("Incoming Request", extra)

        try:
            response = await call_next(request)
        except Exception as e:
            extra.update({"error": str(e)})
            LOGGER.error("Error in request processing", extra=extra)
            raise

        extra.update({"status_code": response.status_code})
        LOGGER.info("Response", extra=extra)

        return response
