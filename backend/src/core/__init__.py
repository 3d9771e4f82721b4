"""
Cross-cutting building blocks: settings, structured logging, the error
hierarchy, bearer token verification and rate limiting.
"""
