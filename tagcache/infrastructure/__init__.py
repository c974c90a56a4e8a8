"""
Infrastructure Layer

Concrete cache stores and the cache-aside orchestrator.
"""
