"""candlesync核心异常类.

Every error carries a stable ``error_code`` and a flat ``details`` mapping so
that the CLI and the web layer can report it without knowing the subclass.
"""

from typing import Any


class CandleSyncError(Exception):
    """candlesync基础异常类."""

    error_code = "GENERAL_ERROR"

    def __init__(self, message: str, error_code: str | None = None, details: dict[str, Any] | None = None):
        """初始化异常.

        Args:
            message: 错误消息
            error_code: 错误代码, 默认使用类上的 ``error_code``
            details: 额外详情
        """
        super().__init__(message)
        self.message = message
        if error_code is not None:
            self.error_code = error_code
        self.details = dict(details or {})

    def to_dict(self) -> dict[str, Any]:
        return {"error": type(self).__name__, "error_code": self.error_code, "message": self.message, **self.details}


class ProviderError(CandleSyncError):
    """价格提供商调用失败 (网络, 上游错误或无法解析的响应)."""

    error_code = "PROVIDER_ERROR"

    def __init__(
        self,
        message: str,
        provider_name: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, error_code, {"provider": provider_name, **(details or {})})
        self.provider_name = provider_name


class RateLimitError(ProviderError):
    """上游限流. 不在同一次同步内重试."""

    error_code = "RATE_LIMIT_ERROR"

    def __init__(
        self,
        message: str,
        provider_name: str,
        retry_after: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        extra = dict(details or {})
        if retry_after is not None:
            extra["retry_after"] = retry_after
        super().__init__(message, provider_name, details=extra)
        self.retry_after = retry_after


class LockTimeoutError(CandleSyncError):
    """同步锁在等待时间内未能获取."""

    error_code = "LOCK_TIMEOUT"

    def __init__(self, lock_name: str, wait_seconds: float):
        super().__init__(
            f"Could not acquire lock '{lock_name}' within {wait_seconds}s",
            details={"lock_name": lock_name, "wait_seconds": wait_seconds},
        )
        self.lock_name = lock_name
        self.wait_seconds = wait_seconds


class CacheError(CandleSyncError):
    """缓存写入失败."""

    error_code = "CACHE_ERROR"

    def __init__(self, message: str, cache_type: str | None = None):
        super().__init__(message, details={"cache_type": cache_type} if cache_type else None)
        self.cache_type = cache_type


class PersistenceError(CandleSyncError):
    """持久化存储异常."""

    error_code = "PERSISTENCE_ERROR"

    def __init__(self, message: str, operation: str | None = None):
        super().__init__(message, details={"operation": operation} if operation else None)
        self.operation = operation


class ConfigurationError(CandleSyncError):
    """配置异常."""

    error_code = "CONFIGURATION_ERROR"

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message, details={"field": field} if field else None)
        self.field = field
