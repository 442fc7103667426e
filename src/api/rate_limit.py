"""Rate limiting configuration for API endpoints.

Provides a shared Limiter instance that route modules can import
to apply per-endpoint rate limits.

Rate limit tiers:
- Global default: 60/minute per IP (covers ALL endpoints automatically)
- Standard: 30/minute (validation, listings)
- Critical: 5/minute (deployment, rollback, sync)

Usage in route modules:
    from src.api.rate_limit import limiter

    @router.post("/sync")
    @limiter.limit("5/minute")
    async def trigger_sync(request: Request, ...):
        ...
"""

from slowapi import Limiter
from starlette.requests import Request


def _get_real_client_ip(request: Request) -> str:
    """Extract the client IP, respecting X-Forwarded-For from a reverse proxy."""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # X-Forwarded-For: client, proxy1, proxy2; take the leftmost (client)
        return forwarded_for.split(",")[0].strip()
    if request.client:
        return request.client.host
    return "127.0.0.1"


limiter = Limiter(
    key_func=_get_real_client_ip,
    default_limits=["60/minute"],
)

# Workflow documents are small; anything larger is rejected in main.py
MAX_REQUEST_BODY_BYTES = 1_048_576  # 1 MB
