from .media import MediaRepository
from .restaurants import RestaurantsRepository
from .place_cache import PlaceCacheRepository
from . import models

__all__ = ["MediaRepository", "RestaurantsRepository", "PlaceCacheRepository", "models"]
