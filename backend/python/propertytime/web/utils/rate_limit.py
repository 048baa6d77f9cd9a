"""
Fixed-window rate limiting per client IP.

Three independent budgets guard the API: general traffic, admin secret
checks and submissions. Counters are in-memory, per process.
"""

import time
from functools import wraps
from threading import Lock
from flask import request, current_app

from propertytime.web.errors import RateLimitError

LIMIT_MESSAGES = {
    'general': 'Too many requests from this IP, please try again later',
    'auth': 'Too many authentication attempts, please try again later',
    'submissions': 'Too many submissions, please try again later',
}

# Prune expired windows once the table grows past this many keys
_PRUNE_THRESHOLD = 10000


class RateLimiter:
    """
    In-memory fixed-window counter.

    A key's window opens on its first request and lasts window_seconds;
    at most max_requests are admitted per window. Thread-safe.
    """

    def __init__(self, max_requests, window_seconds, clock=time.time):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows = {}
        self._lock = Lock()

    def _prune(self, now):
        expired = [k for k, (start, _) in self._windows.items()
                   if now - start >= self.window_seconds]
        for key in expired:
            del self._windows[key]

    def hit(self, key):
        """
        Count a request for key.

        Returns:
            tuple: (is_limited: bool, retry_after_seconds: int or None)
        """
        with self._lock:
            now = self._clock()
            if len(self._windows) > _PRUNE_THRESHOLD:
                self._prune(now)

            start, count = self._windows.get(key, (now, 0))
            if now - start >= self.window_seconds:
                start, count = now, 0

            if count >= self.max_requests:
                self._windows[key] = (start, count)
                retry_after = int((start + self.window_seconds) - now) + 1
                return True, max(retry_after, 1)

            self._windows[key] = (start, count + 1)
            return False, None

    def reset(self, key):
        with self._lock:
            self._windows.pop(key, None)


def build_rate_limiters(rate_limit_settings, clock=time.time):
    """One limiter per budget name in RateLimitSettings."""
    return {
        'general': RateLimiter(rate_limit_settings.general.max_requests,
                               rate_limit_settings.general.window_seconds, clock),
        'auth': RateLimiter(rate_limit_settings.auth.max_requests,
                            rate_limit_settings.auth.window_seconds, clock),
        'submissions': RateLimiter(rate_limit_settings.submissions.max_requests,
                                   rate_limit_settings.submissions.window_seconds, clock),
    }


def get_client_ip():
    """Get client IP, handling proxies."""
    if request.headers.get('X-Forwarded-For'):
        return request.headers.get('X-Forwarded-For').split(',')[0].strip()
    return request.remote_addr or 'unknown'


def check_rate_limit(name):
    """Count the current request against limiter name; raise when exceeded."""
    limiter = current_app.rate_limiters[name]
    ip = get_client_ip()
    is_limited, retry_after = limiter.hit(f"{name}:{ip}")
    if is_limited:
        current_app.logger.warning(f"Rate limit '{name}' exceeded for {ip} on {request.path}")
        raise RateLimitError(LIMIT_MESSAGES[name], retry_after)


def rate_limited(name):
    """
    Decorator applying the named budget to a route.

    Usage:
        @api_bp.route('/submit-time', methods=['POST'])
        @rate_limited('submissions')
        def submit_time():
            ...
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            check_rate_limit(name)
            return f(*args, **kwargs)
        return decorated_function
    return decorator
