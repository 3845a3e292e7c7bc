"""Resource namespaces for the photosync client."""

from .assets import Assets
from .sync import DataSync

__all__ = [
    "Assets",
    "DataSync",
]
