"""Blockchain integration for Dripper."""

from .client import SubstrateClient, rpc_watchdog
from .connection import ChainConnection
from .networks import NetworkData, UnknownNetworkError, get_network_data

__all__ = [
    "ChainConnection",
    "NetworkData",
    "SubstrateClient",
    "UnknownNetworkError",
    "get_network_data",
    "rpc_watchdog",
]
