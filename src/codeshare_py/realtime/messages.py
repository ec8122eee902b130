"""WebSocket message types and schemas for real-time project collaboration."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from codeshare_py.core.models import AssetDraft
from codeshare_py.exceptions import InvalidMessageError

if TYPE_CHECKING:
    from codeshare_py.core.models import Asset

DEFAULT_EDIT_ORIGIN = "remote"


class MessageType(str, Enum):
    """Types of WebSocket messages."""

    # Client -> Server
    JOIN = "join"
    EDIT = "edit"
    CURSOR = "cursor"
    ASSET_ADDED = "asset-added"
    ASSET_REMOVED = "asset-removed"

    # Server -> Client
    INIT = "init"
    ASSETS = "assets"
    UPDATE = "update"
    USER_LEFT = "user-left"


def _require(data: dict[str, Any], key: str, message_type: MessageType) -> Any:
    value = data.get(key)
    if value is None:
        msg = f"Missing required field '{key}'"
        raise InvalidMessageError(msg, message_type.value)
    return value


def _require_project_id(data: dict[str, Any], message_type: MessageType) -> str:
    project_id = _require(data, "projectId", message_type)
    if not isinstance(project_id, str) or not project_id:
        msg = "Field 'projectId' must be a non-empty string"
        raise InvalidMessageError(msg, message_type.value)
    return project_id


# Inbound messages


@dataclass
class JoinRequest:
    """Client request to join a project's room."""

    project_id: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> JoinRequest:
        """Validate and build from a decoded payload."""
        return cls(project_id=_require_project_id(data, MessageType.JOIN))


@dataclass
class EditChanges:
    """A single editor change as relayed between clients.

    ``from_`` and ``to`` are opaque editor positions; they are relayed as-is.
    """

    from_: Any
    to: Any
    text: Any = None
    origin: str = DEFAULT_EDIT_ORIGIN

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "from": self.from_,
            "to": self.to,
            "text": self.text,
            "origin": self.origin,
        }


@dataclass
class EditRequest:
    """Client edit to relay to the rest of the room."""

    project_id: str
    changes: EditChanges

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EditRequest:
        """Validate and build from a decoded payload.

        Raises:
            InvalidMessageError: If ``changes``, ``changes.from`` or ``changes.to`` is missing.
        """
        project_id = _require_project_id(data, MessageType.EDIT)
        changes = _require(data, "changes", MessageType.EDIT)
        if not isinstance(changes, dict):
            msg = "Field 'changes' must be an object"
            raise InvalidMessageError(msg, MessageType.EDIT.value)
        if changes.get("from") is None or changes.get("to") is None:
            msg = "Invalid changes object: 'from' and 'to' are required"
            raise InvalidMessageError(msg, MessageType.EDIT.value)
        return cls(
            project_id=project_id,
            changes=EditChanges(
                from_=changes["from"],
                to=changes["to"],
                text=changes.get("text"),
                origin=changes.get("origin") or DEFAULT_EDIT_ORIGIN,
            ),
        )


@dataclass
class CursorRequest:
    """Client cursor position to relay to the rest of the room."""

    project_id: str
    cursor_pos: Any
    client_id: Any

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CursorRequest:
        """Validate and build from a decoded payload."""
        return cls(
            project_id=_require_project_id(data, MessageType.CURSOR),
            cursor_pos=_require(data, "cursorPos", MessageType.CURSOR),
            client_id=_require(data, "clientId", MessageType.CURSOR),
        )


@dataclass
class AssetAddRequest:
    """Client announcement of a newly uploaded asset."""

    project_id: str
    asset: AssetDraft

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AssetAddRequest:
        """Validate and build from a decoded payload.

        Raises:
            InvalidMessageError: If the asset object lacks url, filename, type or size.
        """
        project_id = _require_project_id(data, MessageType.ASSET_ADDED)
        asset = _require(data, "asset", MessageType.ASSET_ADDED)
        if not isinstance(asset, dict):
            msg = "Field 'asset' must be an object"
            raise InvalidMessageError(msg, MessageType.ASSET_ADDED.value)
        try:
            draft = AssetDraft.from_dict(asset)
        except (KeyError, TypeError, ValueError) as e:
            msg = f"Invalid asset object: {e}"
            raise InvalidMessageError(msg, MessageType.ASSET_ADDED.value) from e
        return cls(project_id=project_id, asset=draft)


@dataclass
class AssetRemoveRequest:
    """Client request to detach an asset from a project."""

    project_id: str
    asset_url: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AssetRemoveRequest:
        """Validate and build from a decoded payload."""
        return cls(
            project_id=_require_project_id(data, MessageType.ASSET_REMOVED),
            asset_url=str(_require(data, "assetUrl", MessageType.ASSET_REMOVED)),
        )


InboundMessage = JoinRequest | EditRequest | CursorRequest | AssetAddRequest | AssetRemoveRequest

INBOUND_MESSAGES: dict[str, type[InboundMessage]] = {
    MessageType.JOIN.value: JoinRequest,
    MessageType.EDIT.value: EditRequest,
    MessageType.CURSOR.value: CursorRequest,
    MessageType.ASSET_ADDED.value: AssetAddRequest,
    MessageType.ASSET_REMOVED.value: AssetRemoveRequest,
}


def parse_message(raw: str | bytes) -> InboundMessage | None:
    """Parse a raw WebSocket payload into a typed inbound message.

    Args:
        raw: The text or binary frame received from the client.

    Returns:
        The parsed message, or None if the ``type`` is not one this server handles.

    Raises:
        InvalidMessageError: If the payload is not a JSON object, has no ``type``,
            or is missing fields its type requires.
    """
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        msg = f"Invalid JSON message: {e}"
        raise InvalidMessageError(msg) from e

    if not isinstance(data, dict):
        msg = "Message must be a JSON object"
        raise InvalidMessageError(msg)

    msg_type = data.get("type")
    if not isinstance(msg_type, str):
        msg = "Message type is required"
        raise InvalidMessageError(msg)

    message_cls = INBOUND_MESSAGES.get(msg_type)
    if message_cls is None:
        return None
    return message_cls.from_dict(data)


# Outbound messages


@dataclass
class InitMessage:
    """Sent to a client right after it joins, carrying its client ID."""

    client_id: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {"type": MessageType.INIT.value, "clientId": self.client_id}


@dataclass
class AssetsMessage:
    """Replay of a project's current assets to a newly joined client."""

    assets: list[Asset] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "type": MessageType.ASSETS.value,
            "assets": [asset.to_dict() for asset in self.assets],
        }


@dataclass
class UpdateMessage:
    """An edit relayed to the other members of a room."""

    changes: EditChanges

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {"type": MessageType.UPDATE.value, "changes": self.changes.to_dict()}


@dataclass
class CursorMessage:
    """A cursor position relayed to the other members of a room."""

    client_id: Any
    cursor_pos: Any

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "type": MessageType.CURSOR.value,
            "clientId": self.client_id,
            "cursorPos": self.cursor_pos,
        }


@dataclass
class AssetAddedMessage:
    """Announces a persisted asset, including server-assigned fields."""

    asset: Asset

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {"type": MessageType.ASSET_ADDED.value, "asset": self.asset.to_dict()}


@dataclass
class AssetRemovedMessage:
    """Announces that an asset was detached from the project."""

    asset_url: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {"type": MessageType.ASSET_REMOVED.value, "assetUrl": self.asset_url}


@dataclass
class UserLeftMessage:
    """Tells the remaining members of a room that a client disconnected."""

    client_id: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {"type": MessageType.USER_LEFT.value, "clientId": self.client_id}
