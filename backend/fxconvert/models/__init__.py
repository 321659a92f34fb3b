from fxconvert.models.conversion import Conversion
from fxconvert.models.rate_cache import RateCacheEntry

__all__ = ["Conversion", "RateCacheEntry"]
