from __future__ import annotations

import re

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.requests import Request


http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
)

module_config_resolutions_total = Counter(
    "module_config_resolutions_total",
    "Module config resolutions by winning scope",
    ["source"],
)

module_config_cache_hit_total = Counter(
    "module_config_cache_hit_total",
    "Module config resolver cache hits",
)

module_config_cache_miss_total = Counter(
    "module_config_cache_miss_total",
    "Module config resolver cache misses",
)

lead_status_resolutions_total = Counter(
    "lead_status_resolutions_total",
    "Lead status bucket resolutions by outcome",
    ["outcome"],
)

access_decisions_total = Counter(
    "access_decisions_total",
    "Module access decisions by result",
    ["decision"],
)

permission_decisions_total = Counter(
    "permission_decisions_total",
    "Permission rule evaluations by decision",
    ["decision"],
)


_UUID_RE = re.compile(
    r"\b[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[1-5][0-9a-fA-F]{3}-[89abAB][0-9a-fA-F]{3}-[0-9a-fA-F]{12}\b"
)
_OBJECT_ID_RE = re.compile(r"/[0-9a-fA-F]{24}\b")
_PATH_PARAM_RE = re.compile(r"\{[^{}]+\}")


def _sanitize_path(path: str) -> str:
    without_uuids = _UUID_RE.sub("{id}", path)
    return _OBJECT_ID_RE.sub("/{id}", without_uuids)


def resolve_http_path_label(request: Request) -> str:
    route = request.scope.get("route")
    route_path = getattr(route, "path", None) if route is not None else None
    if isinstance(route_path, str) and route_path:
        return _PATH_PARAM_RE.sub("{id}", route_path)
    return _sanitize_path(request.url.path)


def observe_http_request(method: str, path: str, status: int, duration: float) -> None:
    http_requests_total.labels(method=method, path=path, status=str(status)).inc()
    http_request_duration_seconds.labels(method=method, path=path).observe(duration)


def observe_module_config_resolution(source: str) -> None:
    module_config_resolutions_total.labels(source=source).inc()


def observe_module_config_cache_hit() -> None:
    module_config_cache_hit_total.inc()


def observe_module_config_cache_miss() -> None:
    module_config_cache_miss_total.inc()


def observe_lead_status_resolution(resolved: bool) -> None:
    lead_status_resolutions_total.labels(outcome="resolved" if resolved else "unresolved").inc()


def observe_access_decision(enabled: bool) -> None:
    access_decisions_total.labels(decision="enabled" if enabled else "disabled").inc()


def observe_permission_decision(decision: str) -> None:
    permission_decisions_total.labels(decision=decision).inc()


def generate_metrics_payload() -> bytes:
    return generate_latest()


def metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
