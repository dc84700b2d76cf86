import time
import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.routing import APIRoute
from prometheus_client import make_asgi_app
from starlette.middleware.base import BaseHTTPMiddleware

from schedule_core.api.main import api_router
from schedule_core.core.config import settings
from schedule_core.core.db import init_db
from schedule_core.core.observability import (
    REQUEST_COUNT,
    REQUEST_DURATION,
    get_logger,
    set_correlation_id,
    set_tenant_id,
    setup_structured_logging,
)

logger = get_logger(__name__)


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """Correlation ids, request logging and request metrics."""

    async def dispatch(self, request: Request, call_next):
        correlation_id = set_correlation_id(request.headers.get("X-Correlation-ID"))
        tenant_id = request.headers.get("X-Tenant-ID", "")
        if tenant_id:
            set_tenant_id(tenant_id)

        start_time = time.perf_counter()
        method = request.method
        path = request.url.path
        logger.info("Request started", method=method, path=path)

        try:
            response = await call_next(request)
        except Exception as e:
            duration = time.perf_counter() - start_time
            REQUEST_COUNT.labels(method=method, endpoint=path, status="500").inc()
            REQUEST_DURATION.labels(method=method, endpoint=path).observe(duration)
            logger.error(
                "Request failed",
                method=method,
                path=path,
                duration_seconds=duration,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            raise

        duration = time.perf_counter() - start_time
        REQUEST_COUNT.labels(
            method=method, endpoint=path, status=str(response.status_code)
        ).inc()
        REQUEST_DURATION.labels(method=method, endpoint=path).observe(duration)
        response.headers["X-Correlation-ID"] = correlation_id
        logger.info(
            "Request completed",
            method=method,
            path=path,
            status_code=response.status_code,
            duration_seconds=duration,
        )
        return response


def custom_generate_unique_id(route: APIRoute) -> str:
    return f"{route.tags[0]}-{route.name}"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_structured_logging()
    init_db()
    logger.info(
        "Application started",
        project_name=settings.PROJECT_NAME,
        environment=settings.ENVIRONMENT,
        api_version=settings.API_V1_STR,
        metrics_enabled=settings.ENABLE_METRICS,
    )
    yield
    logger.info("Application shutdown")


app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    generate_unique_id_function=custom_generate_unique_id,
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

if settings.ENABLE_METRICS:
    app.mount("/metrics", make_asgi_app())

app.include_router(api_router, prefix=settings.API_V1_STR)
