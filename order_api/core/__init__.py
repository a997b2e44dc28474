"""
Core application utilities.

This package provides:
- Application-level settings (separate from DB settings)
- Logging configuration with request correlation ids
- Entity validation primitives and the domain exceptions
- FastAPI dependency helpers (unit of work per request)
"""
