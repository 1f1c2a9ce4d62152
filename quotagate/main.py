import logging

import uvicorn

from quotagate.core.app_factory import create_app
from quotagate.core.config import settings

logger = logging.getLogger(__name__)

app = create_app()


def run() -> None:
    """Serve the app with uvicorn using the configured host and port."""

    logger.info(
        "server.starting",
        extra={
            "host": settings.app.host,
            "port": settings.app.port,
            "store_backend": settings.app.store_backend,
            "redis_url": settings.redis.url,
            "ip_rate_limit": settings.limits.ip_rate_limit,
            "ip_rate_window_s": settings.limits.ip_rate_window,
            "token_rate_limit": settings.limits.token_rate_limit,
            "token_rate_window_s": settings.limits.token_rate_window,
        },
    )
    uvicorn.run(app, host=settings.app.host, port=settings.app.port, log_config=None)
