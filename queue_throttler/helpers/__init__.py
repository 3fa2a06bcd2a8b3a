from .redis_client import redis_client

__all__ = ["redis_client"]
