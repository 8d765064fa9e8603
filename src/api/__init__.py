"""
FastAPI application layer for the public-key encryption service.

This module provides the HTTP endpoint that encrypts a caller's payload under
the RSA public key stored on their user record.
"""
