"""
API Package

FastAPI surface for cache operations: health and admin routes.
"""
