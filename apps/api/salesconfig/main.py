from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from salesconfig.api.routes import router as api_router
from salesconfig.core.config import get_settings
from salesconfig.logging import configure_logging
from salesconfig.middleware.correlation_id import CorrelationIdMiddleware
from salesconfig.middleware.request_logging import RequestLoggingMiddleware
from salesconfig.moduleconfig.resolver import CachingConfigResolver, ConfigResolver, set_config_resolver
from salesconfig.otel import get_fastapi_server_request_hook, setup_otel


configure_logging()
logger = logging.getLogger("salesconfig.lifecycle")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logger.info("system.started", extra={"source": settings.app_env})
    yield


app = FastAPI(title="Sales Config API", version="0.1.0", lifespan=lifespan)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(CorrelationIdMiddleware)
app.include_router(api_router)

settings = get_settings()
if settings.module_config_cache_enabled:
    set_config_resolver(CachingConfigResolver(ConfigResolver()))
else:
    set_config_resolver(ConfigResolver())

if settings.otel_enabled:
    setup_otel("salesconfig", True)

if not getattr(app, "_is_instrumented_by_opentelemetry", False):
    FastAPIInstrumentor().instrument_app(app, server_request_hook=get_fastapi_server_request_hook())
