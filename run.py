"""
应用启动入口
从 config.yaml / 环境变量读取配置并启动 uvicorn 服务器
"""
import os

import uvicorn

from alert2snow.core.config import load_config

if __name__ == "__main__":
    _, settings = load_config()

    # 从环境变量读取工作进程数（如果设置了）
    workers = int(os.getenv("WORKERS", 1))

    uvicorn.run(
        "app:create_app",
        factory=True,
        host=settings.server.host,
        port=settings.server.port,
        workers=workers,
        # 优雅关闭：等待在途请求处理完成
        timeout_graceful_shutdown=int(settings.server.shutdown_timeout),
        log_level=settings.logging.level.lower(),
        access_log=True,
    )
