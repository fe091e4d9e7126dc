"""Health endpoints for hosting platforms that probe the process over HTTP."""

from app.infra.observability.http_server import create_app, start_health_http

__all__ = ["create_app", "start_health_http"]
