"""Real-time WebSocket module for codeshare-py.

This module provides the collaboration core: the session registry, the
broadcast engine, join/disconnect handling, asset synchronization and the
protocol dispatcher that ties them to a WebSocket endpoint.
"""

from __future__ import annotations

from codeshare_py.realtime.assets import AssetSyncCoordinator
from codeshare_py.realtime.broadcast import Broadcaster
from codeshare_py.realtime.dispatcher import Connection, ProtocolDispatcher
from codeshare_py.realtime.handler import ProjectWebSocketHandler, create_websocket_handler
from codeshare_py.realtime.lifecycle import LifecycleManager
from codeshare_py.realtime.messages import MessageType, parse_message
from codeshare_py.realtime.registry import Session, SessionRegistry

__all__ = [
    "AssetSyncCoordinator",
    "Broadcaster",
    "Connection",
    "LifecycleManager",
    "MessageType",
    "ProjectWebSocketHandler",
    "ProtocolDispatcher",
    "Session",
    "SessionRegistry",
    "create_websocket_handler",
    "parse_message",
]
