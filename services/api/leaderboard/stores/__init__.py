"""Data stores.

Stores handle:
- Redis: client lifecycle for the ranking sorted sets

No ranking/windowing logic in stores - that belongs in services.
"""
