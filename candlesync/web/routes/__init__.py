"""API路由模块"""

from candlesync.web.routes.health_routes import router as health_router

__all__ = ["health_router"]
