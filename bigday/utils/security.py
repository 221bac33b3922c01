"""
Rate limiting and client identification
"""

import time
from collections import defaultdict

from bigday.core.config import settings

# Simple in-memory rate limiter
rate_limiter = defaultdict(list)

def rate_limit_check(client_ip: str, limit: int = None) -> bool:
    """Simple rate limiting by IP address"""
    if limit is None:
        limit = settings.RATE_LIMIT_PER_MINUTE

    current_time = time.time()
    minute_ago = current_time - 60

    # Clean old requests
    rate_limiter[client_ip] = [
        req_time for req_time in rate_limiter[client_ip]
        if req_time > minute_ago
    ]

    if len(rate_limiter[client_ip]) >= limit:
        return False

    rate_limiter[client_ip].append(current_time)
    return True

def get_client_ip(request) -> str:
    """Extract client IP from request"""
    # Reverse proxy setups put the original address first
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    return request.client.host if request.client else "unknown"

def is_secure_request(request) -> bool:
    """HTTPS directly or behind a TLS-terminating proxy"""
    if request.url.scheme == "https":
        return True
    return request.headers.get("X-Forwarded-Proto", "").split(",")[0].strip() == "https"
