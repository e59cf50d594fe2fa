"""Rate limiting adapters.

The gateway starts with a per-process in-memory limiter; a shared store
(e.g. Redis) can be added behind the same interface for multi-worker
deployments without touching the HTTP layer.
"""
