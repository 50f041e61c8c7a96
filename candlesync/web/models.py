"""
Web API 响应模型
"""

from typing import Any

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """错误响应模型"""

    error: str = Field(..., description="错误类型")
    message: str = Field(..., description="错误消息")
    details: dict[str, Any] = Field(default_factory=dict, description="错误详情")
    request_id: str | None = Field(None, description="请求ID")
