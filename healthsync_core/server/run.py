"""命令行入口：用 uvicorn 启动知识库应答服务。"""

import uvicorn

from healthsync_core.config.settings import settings
from healthsync_core.infrastructure.logging.logger import logger


def main() -> None:
    """启动知识库应答服务。"""
    logger.info(
        "Starting HealthSync knowledge responder",
        extra={"extra": {
            "host": settings.server_host,
            "port": settings.server_port,
            "cors_origin": settings.frontend_url,
            "api_key_configured": bool(settings.chat_api_key),
        }},
    )
    uvicorn.run(
        "healthsync_core.server.app:app",
        host=settings.server_host,
        port=settings.server_port,
    )


if __name__ == "__main__":
    main()
