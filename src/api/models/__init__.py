"""
Pydantic models for API request/response schemas.

These models define the shape of data that flows between callers and the service.
They are separate from the internal pipeline types to maintain clear API boundaries.
"""
