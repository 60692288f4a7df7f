from .emitter import persist_then_forward
from .response_cache import ResponseCache, ResponseCacheConfig

__all__ = ["ResponseCache", "ResponseCacheConfig", "persist_then_forward"]
