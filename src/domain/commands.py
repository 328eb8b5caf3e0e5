"""
Command decoder - Parses raw queue payloads into registration commands.

Decoding is the only place wire strings are interpreted. Everything
downstream works with the Command dataclass and RegistrationAction enum.
"""

from dataclasses import dataclass
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from .exceptions import DecodeError
from .ports import RegistrationAction

# Largest value a PostgreSQL BIGINT column holds
MAX_SEQUENCE = 2**63 - 1


class RegistrationMessage(BaseModel):
    """
    Wire schema of a registration message.

    Accepts camelCase (current producers), PascalCase (legacy producers
    serializing DTO properties as-is) and snake_case field names.
    """

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    event_id: UUID = Field(validation_alias=AliasChoices("eventId", "EventId", "event_id"))
    user_id: str = Field(
        min_length=1,
        pattern=r"^[^\x00]+$",
        validation_alias=AliasChoices("userId", "UserId", "user_id"),
    )
    action: str = Field(min_length=1, validation_alias=AliasChoices("action", "Action"))
    sequence: int | None = Field(
        default=None, ge=0, le=MAX_SEQUENCE, validation_alias=AliasChoices("sequence", "Sequence")
    )


@dataclass(frozen=True)
class Command:
    """
    One decoded queue message.

    action is None when the message is well-formed but asks for an action
    this consumer does not model; action_name keeps the wire value.
    """

    event_id: UUID
    user_id: str
    action: RegistrationAction | None
    action_name: str
    sequence: int | None = None
    message_id: str | None = None

    @property
    def is_recognized(self) -> bool:
        return self.action is not None


def decode_command(payload: bytes | str, message_id: str | None = None) -> Command:
    """
    Decode a raw message payload into a Command.

    Args:
        payload: JSON message body
        message_id: Transport message id, carried along for audit and logs

    Returns:
        Decoded command

    Raises:
        DecodeError: Invalid JSON, missing or empty field, invalid event id,
            or a value the ledger cannot store (NUL in user id, sequence
            beyond BIGINT)
    """
    try:
        message = RegistrationMessage.model_validate_json(payload)
    except ValidationError as e:
        raise DecodeError(f"Malformed registration message: {e}") from e
    except ValueError as e:  # undecodable bytes
        raise DecodeError(f"Malformed registration message: {e}") from e

    return Command(
        event_id=message.event_id,
        user_id=message.user_id,
        action=RegistrationAction.from_wire(message.action),
        action_name=message.action,
        sequence=message.sequence,
        message_id=message_id,
    )
