"""HTTP routers for the cache admin surface."""
