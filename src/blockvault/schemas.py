from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import NamedTuple

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

MAX_FILE_SIZE = 2**64 - 1


def now_utc() -> datetime:
    return datetime.now(tz=UTC)


def new_file_id() -> str:
    """Return a random 128-bit identifier.

    Uniqueness is probabilistic: collisions are not checked against the store.
    """
    return str(uuid.uuid4())


def normalize_datetime(value: datetime) -> datetime:
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class DTOBase(BaseModel):
    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class FileRecord(DTOBase):
    id: str
    file_name: str
    file_size: int = Field(ge=0, le=MAX_FILE_SIZE)
    file_type: str
    uploaded_at: datetime
    updated_at: datetime | None = None

    @field_validator("uploaded_at", "updated_at", mode="after")
    @classmethod
    def validate_datetime_fields(cls, value: datetime | None) -> datetime | None:
        if value is None:
            return None
        return normalize_datetime(value)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)


class FileEntry(NamedTuple):
    record: FileRecord
    content: bytes


@dataclass(slots=True, frozen=True)
class NotFound:
    file_id: str

    @property
    def message(self) -> str:
        return f"File with id={self.file_id} not found"

    def __str__(self) -> str:
        return self.message
