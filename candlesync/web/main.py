"""
Web 服务启动脚本
"""

import os

import uvicorn


def serve() -> None:
    """启动健康检查服务"""

    host = os.getenv("CANDLESYNC_HOST", "0.0.0.0")
    port = int(os.getenv("CANDLESYNC_PORT", "8000"))
    reload = os.getenv("CANDLESYNC_RELOAD", "false").lower() == "true"

    uvicorn.run("candlesync.web.app:create_app", factory=True, host=host, port=port, reload=reload, log_level="info")


if __name__ == "__main__":
    serve()
