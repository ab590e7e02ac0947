import logging
import time

import httpx

from .settings import settings

logger = logging.getLogger("insider_monitor.upstream")

REDACTED_PARAMS = ("apikey",)


def _slow_threshold_seconds() -> float:
    try:
        return max(float(settings.HTTPX_SLOW_REQUEST_THRESHOLD_SECONDS), 0.0)
    except (TypeError, ValueError):
        return 0.0


def redacted_url(url: httpx.URL) -> httpx.URL:
    for param in REDACTED_PARAMS:
        if param in url.params:
            url = url.copy_set_param(param, "***")
    return url


def log_upstream_response(source: str, response: httpx.Response, duration_seconds: float) -> None:
    """Warn about slow or non-2xx upstream calls; fast successes log at DEBUG."""
    threshold = _slow_threshold_seconds()
    is_slow = threshold > 0 and duration_seconds >= threshold
    is_error = not response.is_success
    latency_ms = int(duration_seconds * 1000)
    url = redacted_url(response.request.url)
    if not is_slow and not is_error:
        logger.debug(
            "upstream_ok source=%s url=%s status=%s latency_ms=%s",
            source,
            url,
            response.status_code,
            latency_ms,
        )
        return
    tag = "error_slow" if is_slow and is_error else ("error" if is_error else "slow")
    logger.warning(
        "httpx_request_%s source=%s method=%s url=%s status=%s latency_ms=%s",
        tag,
        source,
        response.request.method,
        url,
        response.status_code,
        latency_ms,
    )


class UpstreamTimer:
    def __init__(self) -> None:
        self._start = time.monotonic()

    def elapsed(self) -> float:
        return time.monotonic() - self._start
