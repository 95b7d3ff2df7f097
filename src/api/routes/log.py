"""
Log Page Routes

``GET /log`` shows the live logging configuration (with forms to add or
delete a verbose logger) followed by the tail of ``fe.warn.log``. Every
failure is rendered into the page; the request itself does not fail.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from services.log_config_store import ConfigUnavailable, ConfigUpdateFailed, LogConfigStore
from services.log_tail import WEB_LOG_BYTES, LogFileNotFound, LogReadFailed, read_tail

from ..dependencies import get_log_config_store, get_warn_log_path
from ..models.logs import VerboseNameEdit


router = APIRouter()
templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent.parent / "templates"))
logger = logging.getLogger(__name__)

SERVICE_NAME = "logview"
SERVICE_VERSION = "1.0.0"


def get_verbose_edit(
    add_verbose: Optional[str] = Query(None, description="要添加的 verbose logger"),
    del_verbose: Optional[str] = Query(None, description="要删除的 verbose logger"),
) -> VerboseNameEdit:
    return VerboseNameEdit(add_name=add_verbose, remove_name=del_verbose)


def build_config_section(store: LogConfigStore, edit: VerboseNameEdit) -> Dict[str, Any]:
    section: Dict[str, Any] = {"config": None, "error": None, "update_error": None}
    try:
        if edit.is_empty:
            section["config"] = store.snapshot()
        else:
            section["config"] = store.apply_delta(edit.add_name, edit.remove_name)
    except ConfigUpdateFailed as exc:
        section["update_error"] = str(exc)
        try:
            section["config"] = store.snapshot()
        except ConfigUnavailable as inner:
            section["error"] = str(inner)
    except ConfigUnavailable as exc:
        section["error"] = str(exc)
    return section


def build_log_section(path: str, budget_bytes: int = WEB_LOG_BYTES) -> Dict[str, Any]:
    section: Dict[str, Any] = {"path": path, "tail": None, "error": None}
    try:
        section["tail"] = read_tail(path, budget_bytes)
    except LogFileNotFound:
        section["error"] = f"Couldn't open log file: {path}"
    except LogReadFailed:
        section["error"] = f"Failed to read log file: {path}"
    return section


@router.get("/log", response_class=HTMLResponse, summary="日志配置与日志内容")
def log_page(
    request: Request,
    edit: VerboseNameEdit = Depends(get_verbose_edit),
    store: LogConfigStore = Depends(get_log_config_store),
    log_path: str = Depends(get_warn_log_path),
):
    """
    查看并修改 verbose logger，显示 fe.warn.log 最后 1MB 内容

    - **add_verbose**: 要添加的 verbose logger
    - **del_verbose**: 要删除的 verbose logger
    """
    logger.info("add verbose name: %s, del verbose name: %s", edit.add_name, edit.remove_name)

    return templates.TemplateResponse(
        request,
        "log.html",
        {
            "service_name": SERVICE_NAME,
            "version": SERVICE_VERSION,
            "conf_section": build_config_section(store, edit),
            "log_section": build_log_section(log_path),
        },
    )
