"""
Common utilities for mystery-garden-client.

Modules:
- interfaces: protocols for chain, FHE SDK, signer and wallet collaborators
- gateway: async JSON read gateway client with rate limiting and retries
- rate_limiter: async sliding-window rate limiter
- weighted: seedable weighted random draws for encrypted inputs
"""

__all__ = [
    "gateway",
    "interfaces",
    "rate_limiter",
    "weighted",
]
