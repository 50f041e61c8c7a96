"""缓存策略和接口定义."""

from abc import ABC, abstractmethod


class CacheStrategy(ABC):
    """缓存策略抽象基类.

    Values are opaque strings; ``ttl <= 0`` stores without expiry.
    """

    name: str = "abstract"

    @abstractmethod
    def get(self, key: str) -> str | None:
        """从缓存获取数据."""

    @abstractmethod
    def set(self, key: str, value: str, ttl: int) -> None:
        """设置缓存数据."""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """删除缓存数据."""

    @abstractmethod
    def clear(self) -> None:
        """清空缓存."""

    @abstractmethod
    def get_ttl(self, key: str) -> int | None:
        """获取剩余TTL, 无过期时间时返回 -1."""
