"""Administrative endpoints exposing the log configuration as JSON."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from services.log_config_store import ConfigUnavailable, ConfigUpdateFailed, LogConfigStore
from shared.log_models import LogConfiguration
from shared.logging_config import AUDIT_LOGGER_PREFIX, iter_logger_levels

from ..dependencies import get_log_config_store
from ..models.logs import LogConfigDelta, LogConfigResponse


router = APIRouter()


def _to_response(conf: LogConfiguration) -> LogConfigResponse:
    names = ["", *conf.verbose_loggers, *(AUDIT_LOGGER_PREFIX + name for name in conf.audit_loggers)]
    return LogConfigResponse.from_config(conf, dict(iter_logger_levels(names)))


@router.get("/admin/log-config", response_model=LogConfigResponse, summary="查看日志配置")
def get_log_config(store: LogConfigStore = Depends(get_log_config_store)) -> LogConfigResponse:
    """Return the current level, verbose and audit loggers."""

    try:
        return _to_response(store.snapshot())
    except ConfigUnavailable as exc:
        raise HTTPException(status_code=503, detail=f"无法获取日志配置: {exc}")


@router.post("/admin/log-config", response_model=LogConfigResponse, summary="修改 verbose logger")
def update_log_config(
    delta: LogConfigDelta,
    store: LogConfigStore = Depends(get_log_config_store),
) -> LogConfigResponse:
    """Add and/or remove a verbose logger; the add is applied first."""

    edit = delta.to_edit()
    try:
        return _to_response(store.apply_delta(edit.add_name, edit.remove_name))
    except ConfigUpdateFailed as exc:
        raise HTTPException(status_code=409, detail=f"无法修改日志配置: {exc}")
    except ConfigUnavailable as exc:
        raise HTTPException(status_code=503, detail=f"无法获取日志配置: {exc}")
