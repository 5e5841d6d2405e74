"""
Write-path normalisation for document store values.
"""

import copy
from enum import Enum
from typing import Any, Dict

from pydantic import BaseModel
from pydantic_core import PydanticUndefined


def sanitize(value: Any) -> Any:
    """
    Recursively convert a value into plain document data.

    Models become camelCase dicts, tuples become lists, enums become their
    values and absent markers become an explicit None, since the store cannot
    represent an absent field inside a nested structure.
    """
    if value is PydanticUndefined:
        return None
    if isinstance(value, BaseModel):
        to_document = getattr(value, "to_document", None)
        dumped = to_document() if callable(to_document) else value.model_dump(mode="json", by_alias=True)
        return sanitize(dumped)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {str(key): sanitize(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [sanitize(item) for item in value]
    return value


def merge_fields(document: Dict[str, Any], partial: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge ``partial`` into ``document`` field by field.

    Each top-level field present in ``partial`` replaces the stored field as a
    whole; fields not mentioned are kept.
    """
    merged = copy.deepcopy(document)
    for key, value in partial.items():
        merged[key] = copy.deepcopy(value)
    return merged
