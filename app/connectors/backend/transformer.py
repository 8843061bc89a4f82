"""Pulseboard — Backend Payload Transformer.

Converts between the camelCase JSON the backend speaks, the snake_case
dicts the entity services take, and the entity models every tier returns.
"""

from typing import Any, Dict, Iterable, List, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel, to_snake
from pydantic_core import to_jsonable_python

from app.core.errors import ParseError, ValidationError
from app.core.logging import get_logger

logger = get_logger("connectors.backend.transformer")

M = TypeVar("M", bound=BaseModel)


def snake_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    """Caller input (camelCase or snake_case) → service field names."""
    return {to_snake(k): v for k, v in data.items()}


def request_body(data: Dict[str, Any]) -> Dict[str, Any]:
    """Caller input → JSON-ready camelCase request body."""
    return {to_camel(to_snake(k)): to_jsonable_python(v) for k, v in data.items()}


def parse_one(model: Type[M], payload: Any) -> M:
    """Validate one remote record; a shape mismatch counts as a parse failure."""
    try:
        return model.model_validate(payload)
    except PydanticValidationError as e:
        raise ParseError(f"Unexpected {model.__name__} payload from backend: {e}") from e


def parse_many(model: Type[M], payload: Any) -> List[M]:
    if not isinstance(payload, list):
        raise ParseError(f"Expected a list of {model.__name__}, got {type(payload).__name__}")
    return [parse_one(model, item) for item in payload]


def build(model: Type[M], data: Dict[str, Any]) -> M:
    """Validate caller input; bad input is the caller's error, not a tier failure."""
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid {model.__name__}: {e}") from e


def to_cache(items: Iterable[BaseModel]) -> List[Dict[str, Any]]:
    return [item.model_dump(mode="json", by_alias=True) for item in items]


def from_cache(model: Type[M], raw: Any) -> List[M]:
    """Cached entries as models. Entries that no longer validate are dropped."""
    if not isinstance(raw, list):
        return []
    items = []
    for n, item in enumerate(raw):
        try:
            items.append(model.model_validate(item))
        except PydanticValidationError as e:
            logger.warning(
                f"Dropping unreadable cached {model.__name__} at index {n}: {e.error_count()} error(s)",
                extra={"entity": model.__name__},
            )
    return items
