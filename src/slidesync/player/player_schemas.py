"""Pydantic schemas for the websocket wire protocol and the state API."""

from __future__ import annotations

import json
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from ..exceptions import InvalidMessageError
from .player_models import PlayerState, PlayMode, UpdateReason

CATALOG_CHANGED = "catalog-changed"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class PlayerStatePatch(_CamelModel):
    """Subset of player fields a control client may set."""

    is_playing: StrictBool | None = None
    current_scene_id: StrictInt | None = None
    mode: PlayMode | None = None
    transition_ms: int | None = None
    play_videos_full_length: StrictBool | None = None

    def changes(self) -> dict[str, Any]:
        """Fields present in the request; ``null`` only counts for the scene id."""
        result: dict[str, Any] = {}
        for name in self.model_fields_set:
            value = getattr(self, name)
            if value is None and name != "current_scene_id":
                continue
            result[name] = value
        return result


class SetScenePayload(_CamelModel):
    scene_id: StrictInt


class SetStateMessage(BaseModel):
    type: Literal["SET_STATE"]
    payload: PlayerStatePatch = Field(default_factory=PlayerStatePatch)


class SetSceneMessage(BaseModel):
    type: Literal["SET_SCENE"]
    payload: SetScenePayload


class NextSceneMessage(BaseModel):
    type: Literal["NEXT_SCENE"]
    payload: dict[str, Any] | None = None


ClientMessage = Annotated[
    Union[SetStateMessage, SetSceneMessage, NextSceneMessage],
    Field(discriminator="type"),
]

_CLIENT_MESSAGE_ADAPTER: TypeAdapter[ClientMessage] = TypeAdapter(ClientMessage)


def parse_client_message(raw: str | bytes) -> ClientMessage:
    """Decode and validate one client frame."""
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise InvalidMessageError("message is not valid JSON") from exc
    try:
        return _CLIENT_MESSAGE_ADAPTER.validate_python(data)
    except ValidationError as exc:
        raise InvalidMessageError(f"invalid message: {exc.error_count()} error(s)") from exc


class PlayerStateResponse(_CamelModel):
    is_playing: bool
    current_scene_id: int | None
    mode: PlayMode
    transition_ms: int
    play_videos_full_length: bool
    scene_started_at: int | None

    @classmethod
    def from_state(cls, state: PlayerState) -> "PlayerStateResponse":
        return cls.model_validate(state.to_payload())


def encode_state_update(state: PlayerState, reason: UpdateReason) -> str:
    return json.dumps(
        {
            "type": "STATE_UPDATE",
            "payload": state.to_payload(),
            "meta": {"reason": reason.value},
        }
    )


def encode_info(message: str) -> str:
    return json.dumps({"type": "INFO", "payload": {"message": message}})


__all__ = [
    "CATALOG_CHANGED",
    "ClientMessage",
    "NextSceneMessage",
    "PlayerStatePatch",
    "PlayerStateResponse",
    "SetSceneMessage",
    "SetStateMessage",
    "encode_info",
    "encode_state_update",
    "parse_client_message",
]
