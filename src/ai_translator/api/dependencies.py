"""Common dependencies for FastAPI routes."""

from fastapi_throttle import RateLimiter

# Rate limiter for model-backed routes
router_limiter = RateLimiter(times=5, seconds=30)
