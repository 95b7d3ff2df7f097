"""
Log Configuration API Models
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from shared.log_models import LogConfiguration


class VerboseNameEdit(BaseModel):
    """一次请求中的 verbose logger 增删"""

    add_name: Optional[str] = Field(None, description="要添加的 verbose logger")
    remove_name: Optional[str] = Field(None, description="要删除的 verbose logger")

    @field_validator("add_name", "remove_name", mode="before")
    @classmethod
    def _strip(cls, value):
        if value is None:
            return None
        value = str(value).strip()
        return value or None

    @property
    def is_empty(self) -> bool:
        return self.add_name is None and self.remove_name is None


class LogConfigDelta(BaseModel):
    """JSON 形式的 verbose logger 修改请求"""

    add_verbose: Optional[str] = Field(None, description="要添加的 verbose logger")
    del_verbose: Optional[str] = Field(None, description="要删除的 verbose logger")

    def to_edit(self) -> VerboseNameEdit:
        return VerboseNameEdit(add_name=self.add_verbose, remove_name=self.del_verbose)


class LogConfigResponse(BaseModel):
    """当前日志配置"""

    level: str = Field(..., description="日志级别")
    verbose_loggers: List[str] = Field(default_factory=list, description="verbose logger 列表")
    audit_loggers: List[str] = Field(default_factory=list, description="audit logger 列表")
    effective_levels: Dict[str, str] = Field(default_factory=dict, description="各 logger 的生效级别")

    @classmethod
    def from_config(cls, conf: LogConfiguration, effective_levels: Optional[Dict[str, str]] = None):
        return cls(
            level=conf.level.value,
            verbose_loggers=list(conf.verbose_loggers),
            audit_loggers=list(conf.audit_loggers),
            effective_levels=effective_levels or {},
        )


class ErrorResponse(BaseModel):
    """错误响应模型"""

    error: str = Field(..., description="错误信息")
    detail: Optional[str] = Field(None, description="详细错误信息")
    code: Optional[str] = Field(None, description="错误代码")
