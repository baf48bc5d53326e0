"""HTTP client for safekeep.

This module provides HTTP clients for the safekeep API:
- ApiClient: Unified client with all operations
- BaseApiClient: Common HTTP operations, retries and error mapping
- AccountApiClient: Account registration and safe storage
- ChannelApiClient: Public-key exchange and secure data
"""

from .account_client import AccountApiClient
from .api_client import ApiClient
from .base_client import BaseApiClient
from .channel_client import ChannelApiClient

__all__ = [
    "AccountApiClient",
    "ApiClient",
    "BaseApiClient",
    "ChannelApiClient",
]
