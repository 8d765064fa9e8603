"""
FastAPI dependencies for request processing.

Dependencies provide reusable logic that can be injected into API endpoints,
such as caller authentication and access to the user key store.
"""
