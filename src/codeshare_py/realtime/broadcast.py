"""Fan-out of outbound messages to the sessions of a project room."""

from __future__ import annotations

import asyncio
import json
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from codeshare_py.realtime.registry import Session, SessionRegistry

logger = structlog.get_logger(__name__)


class Broadcaster:
    """Delivers messages to some subset of a room's sessions.

    A failed send to one session is logged and skipped; it never cancels
    delivery to the rest of the batch.
    """

    def __init__(self, registry: SessionRegistry) -> None:
        """Initialize the broadcaster.

        Args:
            registry: The registry providing room membership snapshots.
        """
        self._registry = registry

    async def broadcast(
        self,
        project_id: str,
        message: dict[str, Any],
        exclude: Session | None = None,
    ) -> int:
        """Send a message to every open session in a room.

        Args:
            project_id: The room to broadcast to.
            message: The message to send.
            exclude: Session whose connection should not receive the message.

        Returns:
            Number of sessions the message was delivered to.
        """
        members = await self._registry.members_of(project_id)
        json_message = json.dumps(message)

        recipients = [
            member for member in members if member.is_open and not member.shares_connection(exclude)
        ]
        if not recipients:
            return 0

        results = await asyncio.gather(
            *(self._send(member, json_message) for member in recipients),
            return_exceptions=True,
        )
        delivered = sum(1 for result in results if result is True)

        logger.debug(
            "Broadcast sent",
            project_id=project_id,
            message_type=message.get("type"),
            recipients=len(recipients),
            delivered=delivered,
        )
        return delivered

    async def send_to(self, session: Session, message: dict[str, Any]) -> bool:
        """Send a message to a single session.

        Args:
            session: The target session.
            message: The message to send.

        Returns:
            True if sent successfully, False otherwise.
        """
        if not session.is_open:
            return False
        return await self._send(session, json.dumps(message))

    async def _send(self, session: Session, message: str) -> bool:
        """Send an encoded message, logging instead of raising on failure.

        Args:
            session: The target session.
            message: The JSON message string.
        """
        try:
            await session.websocket.send_text(message)
        except Exception:
            logger.exception(
                "Failed to send message",
                client_id=session.client_id,
                project_id=session.project_id,
            )
            return False
        return True
