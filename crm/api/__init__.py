"""
API module - FastAPI application and HTTP routes.
"""
