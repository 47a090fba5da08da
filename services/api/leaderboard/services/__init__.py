"""Business logic services.

Services contain all business logic and are called by routes.
Services are deterministic given their inputs and accept dependencies explicitly
(store handle, clock).
"""
