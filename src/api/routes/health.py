"""
Health Check Routes
"""

from datetime import datetime

from fastapi import APIRouter

from services.log_config_store import ConfigUnavailable

from ..dependencies import peek_log_config_store


router = APIRouter()


@router.get("/health", summary="健康检查")
def health_check():
    """基础健康检查"""
    log_config = "unavailable"
    store = peek_log_config_store()
    if store is not None:
        try:
            store.snapshot()
            log_config = "ok"
        except ConfigUnavailable:
            pass

    return {
        "status": "healthy" if log_config == "ok" else "degraded",
        "timestamp": datetime.now().isoformat(),
        "service": "logview",
        "log_config": log_config,
    }
