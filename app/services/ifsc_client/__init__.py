"""IFSC results provider client module."""

from app.services.ifsc_client.api import IFSCClient, ProviderAPIError, ProviderErrorType
from app.services.ifsc_client.cache import TTLCache

__all__ = ["IFSCClient", "ProviderAPIError", "ProviderErrorType", "TTLCache"]
