"""FastAPI entrypoint wiring the log configuration store and routers.

When launched via ``scripts/run_service.py -c config.toml``, the loader
publishes a process-wide configuration accessible here. In development
without a TOML file, environment variables and defaults are used.
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse

from services.log_config_store import LogConfigStore
from shared.config_loader import config_from_env, get_current_config, load_config, set_current_config
from shared.config_schema import AppConfig
from shared.logging_config import configure_logging
from shared.request_logging import RequestLoggingMiddleware

from . import dependencies
from .models.logs import ErrorResponse
from .routes import admin, health, log


def _resolve_config() -> AppConfig:
    conf = get_current_config()
    if conf is not None:
        return conf

    config_path = os.getenv("LOGVIEW_CONFIG_PATH")
    if config_path:
        try:
            conf = load_config(config_path)
            set_current_config(conf)
            logging.info("Reload worker loaded config from %s", config_path)
            return conf
        except Exception as exc:  # pragma: no cover - defensive logging
            logging.warning("Failed to reload config from %s: %s", config_path, exc)

    return config_from_env()


def create_app(conf: Optional[AppConfig] = None) -> FastAPI:
    """Create the app; ``conf`` overrides the process-wide configuration."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        effective = conf or _resolve_config()

        runtime = configure_logging(effective.logging)
        store = LogConfigStore(runtime, snapshot_timeout=effective.log_viewer.snapshot_timeout)
        dependencies.set_log_config_store(store)
        dependencies.set_warn_log_path(runtime.warn_log_path)

        initial = runtime.get_current_config()
        logging.info(
            "log service started: level=%s verbose=%s audit=%s warn log=%s",
            initial.level.value,
            ",".join(initial.verbose_loggers),
            ",".join(initial.audit_loggers),
            runtime.warn_log_path,
        )

        yield

        dependencies.set_log_config_store(None)
        dependencies.set_warn_log_path(None)
        logging.info("log service stopped")

    app = FastAPI(
        title="Log Viewer",
        description="运行时日志配置与 fe.warn.log 查看服务",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        RequestLoggingMiddleware,
        truncate_bytes=conf.logging.request_max_bytes if conf is not None else None,
    )

    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc):
        """全局异常处理"""
        logging.error(f"未处理异常: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(error="Internal Server Error", detail=str(exc)).model_dump(),
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request, exc):
        """HTTP异常处理"""
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(error=exc.detail, code=str(exc.status_code)).model_dump(),
        )

    app.include_router(log.router, tags=["日志"])
    app.include_router(health.router, prefix="/api", tags=["健康检查"])
    app.include_router(admin.router, prefix="/api", tags=["管理"])

    return app


app = create_app()


def main():
    import uvicorn

    uvicorn.run(
        "api.main:app",
        host=os.getenv("APP_HOST", "0.0.0.0"),
        port=int(os.getenv("APP_PORT", "8030")),
        reload=True,
        log_level="info",
    )


if __name__ == "__main__":
    main()
