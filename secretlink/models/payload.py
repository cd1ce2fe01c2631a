import json
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class StoragePayload(BaseModel):
    """Grants a streamed download of a file on a storage disk."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    mode: Literal["storage"] = "storage"
    path: str = Field(..., alias="p", description="Path inside the disk")
    disk: str | None = Field(None, alias="d", description="Disk name, storage default when missing")
    delete_after_download: bool = Field(False, alias="del", description="Delete the file after a complete download")


class UrlPayload(BaseModel):
    """Grants access to an internal URL or app path."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    mode: Literal["url"] = "url"
    url: str = Field(..., alias="u", description="Absolute same-host URL or /path")


SecretPayload = Annotated[Union[StoragePayload, UrlPayload], Field(discriminator="mode")]

_payload_adapter = TypeAdapter(SecretPayload)


def dump_payload(payload: StoragePayload | UrlPayload) -> str:
    """Serialize a payload to compact JSON using the short wire keys."""
    return payload.model_dump_json(by_alias=True, exclude_none=True)


def parse_payload(text: str | bytes) -> StoragePayload | UrlPayload:
    """Parse decrypted JSON into a payload.

    Tokens without a ``mode`` key are treated as storage payloads.
    Raises ``ValueError`` (pydantic's ``ValidationError`` included) on bad input.
    """
    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError("Payload must be a JSON object")
    data.setdefault("mode", "storage")
    return _payload_adapter.validate_python(data)
