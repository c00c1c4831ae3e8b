"""
Adapters package for the eBill console.

Contains the request gateway and the HTTP clients built on it:

- gateway: request construction, response classification, session policy
- auth_client: login against the backend
- resource_client: CRUD for customers, meters, billing, payments, users
- portal_client: public unpaid-bill lookup and checkout

Keep adapters thin: no view state, no navigation.
"""

from .gateway import (
    RequestGateway,
    decode_response,
    Success,
    HttpError,
    Unauthenticated,
    DecodeError,
    DecodeKind,
)
from .auth_client import AuthClient
from .resource_client import ResourceClient, ResourceDefinition, RESOURCES, build_resource_clients
from .portal_client import PortalClient

__all__ = [
    "RequestGateway",
    "decode_response",
    "Success",
    "HttpError",
    "Unauthenticated",
    "DecodeError",
    "DecodeKind",
    "AuthClient",
    "ResourceClient",
    "ResourceDefinition",
    "RESOURCES",
    "build_resource_clients",
    "PortalClient",
]
