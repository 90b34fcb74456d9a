"""Lenient parsing of JSON arrays embedded in model replies.

Models wrap JSON in prose or code fences and leave fields null or empty.
``parse_items`` pulls out the first decodable array and validates each
element on its own, so one bad element never costs the rest.
"""

import json
from typing import Any, TypeVar

import structlog
from pydantic import BaseModel, ConfigDict, ValidationError, model_validator

from ai_bookkeeper.errors import AIResponseParseError

logger = structlog.get_logger(__name__)

PayloadT = TypeVar("PayloadT", bound="LenientPayload")


def extract_json_array(text: str) -> list[Any]:
    """Return the first substring of ``text`` that decodes as a JSON array."""
    decoder = json.JSONDecoder()
    start = text.find("[")
    while start != -1:
        try:
            value, _ = decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            pass
        else:
            if isinstance(value, list):
                return value
        start = text.find("[", start + 1)

    raise AIResponseParseError(
        "No JSON array found in model response", details=text[:500]
    )


class LenientPayload(BaseModel):
    """Base for AI-produced records.

    Null and empty-string fields are dropped before validation so field
    defaults apply; unknown fields are ignored.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _drop_empty(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None and v != ""}
        return data


def parse_items(text: str, model: type[PayloadT]) -> list[PayloadT]:
    """Validate every element of the first JSON array in ``text``.

    Raises AIResponseParseError when no array is present. Elements that fail
    validation are logged and skipped.
    """
    items: list[PayloadT] = []
    for index, raw in enumerate(extract_json_array(text)):
        try:
            items.append(model.model_validate(raw))
        except ValidationError as e:
            logger.warning(
                "ai_item_quarantined",
                model=model.__name__,
                index=index,
                errors=e.error_count(),
                item=str(raw)[:200],
            )
    return items
