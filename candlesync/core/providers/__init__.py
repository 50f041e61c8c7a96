"""价格提供商模块."""

from candlesync.core.providers.base import PriceProvider

__all__ = ["PriceProvider"]
