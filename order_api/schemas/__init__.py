"""
Public Pydantic schemas used by FastAPI routes, repositories, and tests.

Schemas are grouped by domain module (sales, master_data) and also include
common reusable models such as paged and standard error responses.
"""

from .common import MessageResponse  # noqa: F401
