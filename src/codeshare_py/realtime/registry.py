"""Session registry for project collaboration rooms."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import structlog

from codeshare_py.core.ids import generate_client_id

if TYPE_CHECKING:
    from collections.abc import Callable

    from litestar import WebSocket

logger = structlog.get_logger(__name__)

# Litestar sets connection_state to "disconnect" once the socket is closed
_CLOSED_STATES = frozenset({"disconnect"})


@dataclass(eq=False)
class Session:
    """One client's membership in a project room.

    The websocket is a non-owning handle: the transport closes it, the
    registry only forgets it.

    Attributes:
        client_id: Random identifier issued at join time.
        project_id: The room this session belongs to.
        websocket: The client's connection.
        joined_at: When the session was admitted.
    """

    client_id: str
    project_id: str
    websocket: WebSocket
    joined_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def is_open(self) -> bool:
        """Whether the underlying connection can still be written to."""
        return getattr(self.websocket, "connection_state", None) not in _CLOSED_STATES

    def shares_connection(self, other: Session | None) -> bool:
        """Whether ``other`` was admitted over the same connection as this session."""
        return other is not None and self.websocket is other.websocket

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "client_id": self.client_id,
            "project_id": self.project_id,
            "joined_at": self.joined_at.isoformat(),
        }


class SessionRegistry:
    """Tracks which sessions are joined to which project.

    Rooms are created lazily on the first admission and evicted as soon as
    their last session is removed. All mutations and snapshots take the same
    asyncio lock; callers receive copies and never iterate live room state.
    """

    def __init__(self, client_id_factory: Callable[[], str] = generate_client_id) -> None:
        """Initialize an empty registry.

        Args:
            client_id_factory: Generator for candidate client IDs.
        """
        self._rooms: dict[str, list[Session]] = {}
        self._lock = asyncio.Lock()
        self._client_id_factory = client_id_factory

    async def admit(self, project_id: str, websocket: WebSocket) -> Session:
        """Create a session for ``websocket`` in the room for ``project_id``.

        Every call creates a fresh session, even for a connection that has
        already joined.

        Args:
            project_id: The project being joined.
            websocket: The client's connection.

        Returns:
            The new session, holding a client ID unused by the room's live members.
        """
        async with self._lock:
            room = self._rooms.setdefault(project_id, [])
            taken = {member.client_id for member in room}

            client_id = self._client_id_factory()
            while client_id in taken:
                client_id = self._client_id_factory()

            session = Session(client_id=client_id, project_id=project_id, websocket=websocket)
            room.append(session)

            logger.info(
                "Session admitted",
                client_id=client_id,
                project_id=project_id,
                room_size=len(room),
            )
            return session

    async def remove(self, session: Session) -> bool:
        """Remove a session from its room.

        Args:
            session: The session to remove.

        Returns:
            True if the session was registered, False otherwise.
        """
        async with self._lock:
            room = self._rooms.get(session.project_id)
            if room is None:
                return False

            remaining = [member for member in room if member is not session]
            if len(remaining) == len(room):
                return False

            if remaining:
                self._rooms[session.project_id] = remaining
            else:
                del self._rooms[session.project_id]
                logger.info("Room closed", project_id=session.project_id)

            logger.info(
                "Session removed",
                client_id=session.client_id,
                project_id=session.project_id,
                remaining=len(remaining),
            )
            return True

    async def members_of(self, project_id: str) -> list[Session]:
        """Snapshot the sessions joined to a project.

        Args:
            project_id: The project to query.

        Returns:
            A copy of the room's membership, empty for an unknown project.
        """
        async with self._lock:
            return list(self._rooms.get(project_id, ()))

    async def room_ids(self) -> list[str]:
        """List the projects that currently have at least one session."""
        async with self._lock:
            return list(self._rooms)

    @property
    def active_rooms(self) -> int:
        """Get the number of rooms with at least one session."""
        return len(self._rooms)

    @property
    def total_sessions(self) -> int:
        """Get the total number of sessions across all rooms."""
        return sum(len(room) for room in self._rooms.values())
