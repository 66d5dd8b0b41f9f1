from .access_policy import SourceAccessPolicy
from .fetcher import Fetcher

__all__ = ["SourceAccessPolicy", "Fetcher"]
