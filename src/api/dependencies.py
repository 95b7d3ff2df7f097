"""
Dependencies for FastAPI
全局对象管理和依赖注入
"""

from typing import Optional

from fastapi import HTTPException

from services.log_config_store import LogConfigStore


_log_config_store: Optional[LogConfigStore] = None
_warn_log_path: Optional[str] = None


def set_log_config_store(store: Optional[LogConfigStore]):
    """注册全局日志配置存储"""
    global _log_config_store
    _log_config_store = store


def set_warn_log_path(path: Optional[str]):
    """设置 fe.warn.log 路径"""
    global _warn_log_path
    _warn_log_path = path


def peek_log_config_store() -> Optional[LogConfigStore]:
    """返回日志配置存储，未初始化时返回 None"""
    return _log_config_store


def get_log_config_store() -> LogConfigStore:
    """获取日志配置存储"""
    if _log_config_store is None:
        raise HTTPException(status_code=503, detail="日志配置服务未初始化")
    return _log_config_store


def get_warn_log_path() -> str:
    """获取 fe.warn.log 路径"""
    if _warn_log_path is None:
        raise HTTPException(status_code=503, detail="日志路径未配置")
    return _warn_log_path
