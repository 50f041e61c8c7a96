"""
FastAPI 应用工厂和配置
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from candlesync.core.config import CandleSyncConfig, build_cache_backend, load_config_from_env
from candlesync.core.data.cache import CandleCache, CandleCacheContract
from candlesync.core.exceptions import CandleSyncError
from candlesync.core.logging import current_trace_id, get_logger
from candlesync.web.models import ErrorResponse
from candlesync.web.routes import health_router

log = get_logger(__name__)


def create_app(cache: CandleCacheContract | None = None, config: CandleSyncConfig | None = None) -> FastAPI:
    """创建 FastAPI 应用实例"""
    app = FastAPI(
        title="candlesync",
        description="Candle synchronisation service",
        version="0.1.0",
    )

    if cache is None:
        config = config or CandleSyncConfig.from_dict(load_config_from_env())
        cache = CandleCache(build_cache_backend(config))
    app.state.candle_cache = cache

    app.include_router(health_router, tags=["health"])
    _setup_exception_handlers(app)
    return app


def _setup_exception_handlers(app: FastAPI) -> None:
    """配置异常处理器"""

    @app.exception_handler(CandleSyncError)
    async def candlesync_exception_handler(request: Request, exc: CandleSyncError) -> JSONResponse:
        log.error("Request failed", path=request.url.path, error_code=exc.error_code, error=exc.message)
        return JSONResponse(
            status_code=503,
            content=ErrorResponse(
                error=exc.__class__.__name__,
                message=exc.message,
                details={"error_code": exc.error_code, **exc.details},
                request_id=current_trace_id(),
            ).model_dump(),
        )
