"""
Domain layer containing core matchmaking logic and domain services.

Submodules:
- signaling: Access codes, in-memory session store, relay operations, events.
- devices: Durable registry of fixed device codes.
- free_mode: Trial admission control with per-device cooldown.
- liveness: Background sweeper for expiry and offline detection.
- utils: Domain-specific utilities (e.g., ID generation).
"""
