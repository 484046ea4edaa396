from .base import BaseClient
from .resource_client import ResourceClient, ResourceEndpoint

__all__ = [
    "BaseClient",
    "ResourceClient",
    "ResourceEndpoint",
]
