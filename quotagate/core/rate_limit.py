"""Rate limiting middleware for the HTTP layer.

Wires the ``RateLimiter`` into every request:

- client IP: first ``X-Forwarded-For`` entry, then ``X-Real-IP``, then the
  connection address
- token: the header named by ``settings.app.token_header`` (``API_KEY``)
- ``X-RateLimit-*`` headers on every decision, 429 when denied
- counter store failure: opaque 500, never a pass-through

The limiter instance lives on ``app.state.rate_limiter``.
"""

from __future__ import annotations

import logging
import time

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from quotagate.adapters.counter_store import build_counter_store
from quotagate.core.config import Settings, settings
from quotagate.core.errors import StoreUnavailable
from quotagate.core.exception_handlers import internal_error_response
from quotagate.services.rate_limiter import Decision, Policy, RateLimiter

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = (
    "you have reached the maximum number of requests or actions allowed "
    "within a certain time frame"
)
RATE_LIMIT_ERROR = "rate_limit_exceeded"


def build_rate_limiter(cfg: Settings | None = None) -> RateLimiter:
    """Create the counter store and rate limiter described by settings.

    Raises:
        StoreUnavailable: If the Redis backend cannot be reached.
    """

    cfg = cfg or settings
    store = build_counter_store(
        cfg.app.store_backend,
        redis_url=cfg.redis.url,
        timeout_seconds=cfg.redis.timeout_seconds,
        key_prefix=cfg.redis.key_prefix,
    )

    ip = cfg.limits.ip_policy()
    limiter = RateLimiter(
        store,
        Policy(limit=ip.limit, window_seconds=ip.window_seconds, block_seconds=ip.block_seconds),
    )
    for token, policy in cfg.limits.token_policies().items():
        limiter.register_token_policy(
            token,
            Policy(
                limit=policy.limit,
                window_seconds=policy.window_seconds,
                block_seconds=policy.block_seconds,
            ),
        )

    logger.info(
        "rate_limiter.configured",
        extra={
            "backend": cfg.app.store_backend,
            "ip_limit": ip.limit,
            "ip_window_s": ip.window_seconds,
            "ip_block_s": ip.block_seconds,
            "token_policies": len(limiter.token_policies),
        },
    )
    return limiter


def resolve_client_ip(request: Request) -> str:
    """Return the caller IP, honouring proxy headers."""

    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    return request.client.host if request.client else "unknown"


def resolve_token(request: Request) -> str | None:
    return request.headers.get(settings.app.token_header) or None


def rate_limit_headers(decision: Decision) -> dict[str, str]:
    return {
        "X-RateLimit-Limit": str(decision.limit),
        "X-RateLimit-Remaining": str(decision.remaining),
        "X-RateLimit-Reset": str(int(decision.reset_at)),
        "X-RateLimit-Type": decision.limit_kind.value,
    }


async def rate_limit_middleware(request: Request, call_next) -> Response:
    """HTTP middleware enforcing the configured quotas.

    Args:
        request: The incoming HTTP request.
        call_next: The next middleware/route handler in the stack.

    Returns:
        The downstream response with rate limit headers, a 429 response when
        the caller is over quota, or a generic 500 when the store fails.
    """

    limiter: RateLimiter = request.app.state.rate_limiter
    ip = resolve_client_ip(request)
    token = resolve_token(request)

    try:
        decision = await run_in_threadpool(limiter.check_limit, ip, token)
    except StoreUnavailable as exc:
        logger.error(
            "rate_limit.store_unavailable",
            extra={"error_code": exc.code, "request_path": request.url.path},
        )
        return internal_error_response()

    headers = rate_limit_headers(decision)

    if not decision.allowed:
        headers["Retry-After"] = str(decision.retry_after_seconds(time.time()))
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content={"message": RATE_LIMIT_MESSAGE, "error": RATE_LIMIT_ERROR},
            headers=headers,
        )

    response: Response = await call_next(request)
    response.headers.update(headers)
    return response
