"""Request utilities: validation, rate limiting, audit logging."""
