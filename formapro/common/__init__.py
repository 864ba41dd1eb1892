"""
Shared infrastructure: configuration-aware logging, errors, authentication,
database sessions and the login rate limiter.
"""
