"""Unified HTTP API client for safekeep."""

from __future__ import annotations

from .account_client import AccountApiClient
from .channel_client import ChannelApiClient


class ApiClient(AccountApiClient, ChannelApiClient):
    """HTTP client with every safekeep endpoint and automatic retry logic."""

    pass
