# hogwild/__init__.py

from .pool import hogwild_map, replicate

__all__ = ["hogwild_map", "replicate"]
