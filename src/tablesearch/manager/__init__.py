from .search_orchestrator import SearchOrchestrator
from .cache_validator import CacheValidator

__all__ = ["SearchOrchestrator", "CacheValidator"]
