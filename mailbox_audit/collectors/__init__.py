from .base import BaseCollector, describe_error
from .resolver import AccountResolver
from .activity import ActivityCollector
from .permissions import PermissionCollector

__all__ = [
    "BaseCollector",
    "describe_error",
    "AccountResolver",
    "ActivityCollector",
    "PermissionCollector",
]
