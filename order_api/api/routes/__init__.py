"""
API route modules, one router per resource; mounted under /api/v1 by order_api.api.main.
"""
