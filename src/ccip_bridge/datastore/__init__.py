"""Async SQL datastore."""

from ccip_bridge.datastore.client import Datastore
from ccip_bridge.datastore.engines import create_engine

__all__ = ["Datastore", "create_engine"]
