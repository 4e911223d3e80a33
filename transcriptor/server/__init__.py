from .app import create_app
from .rate_limit import RateLimitDecision, RateLimiter, get_client_ip

__all__ = ["RateLimitDecision", "RateLimiter", "create_app", "get_client_ip"]
