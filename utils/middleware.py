import logging
import time
import uuid
from django.utils.deprecation import MiddlewareMixin

logger = logging.getLogger("request")


def _user_info(request):
    user = getattr(request, "user", None)
    if user and user.is_authenticated:
        return f"{user.username} (ID: {user.id})"
    return "anonymous"


class RequestResponseLoggingMiddleware(MiddlewareMixin):
    """
    Logs each request and its response under one trace id.
    Only method, path, status, user and timing are logged, never bodies,
    so passwords and card numbers stay out of the logs.
    """

    def process_request(self, request):
        request.trace_id = str(uuid.uuid4())
        request.started_at = time.monotonic()
        logger.info(
            f"Trace ID: {request.trace_id} | Request: {request.method} {request.path} | User: {_user_info(request)}"
        )
        return None

    def process_response(self, request, response):
        trace_id = getattr(request, "trace_id", "N/A")
        started_at = getattr(request, "started_at", None)
        elapsed_ms = (time.monotonic() - started_at) * 1000 if started_at else 0
        response["X-Trace-Id"] = trace_id

        logger.info(
            f"Trace ID: {trace_id} | Response: {response.status_code} | "
            f"User: {_user_info(request)} | {elapsed_ms:.1f} ms"
        )
        return response
