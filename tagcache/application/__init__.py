"""
Application Layer

Entity-level cache service, key builders and the admin HTTP surface.
"""
