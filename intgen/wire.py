"""JSON-ready views of model dataclasses, shared by the CLI and the HTTP service."""

from __future__ import annotations

import dataclasses
import math
from enum import Enum
from typing import Any, Dict

from pydantic.alias_generators import to_camel

from .models import TemplateValidationResult


def to_wire(value: Any) -> Any:
    """Convert model dataclasses into JSON-ready data with camelCase field names.

    Only dataclass field names are renamed; keys of plain dictionaries such as
    detection metadata are kept as they are.
    """
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            to_camel(item.name): to_wire(getattr(value, item.name))
            for item in dataclasses.fields(value)
        }
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (set, frozenset)):
        return sorted(to_wire(item) for item in value)
    if isinstance(value, (list, tuple)):
        return [to_wire(item) for item in value]
    if isinstance(value, dict):
        return {str(key): to_wire(item) for key, item in value.items()}
    if isinstance(value, float) and math.isinf(value):
        return None
    return value


def validation_wire(result: TemplateValidationResult) -> Dict[str, Any]:
    payload = to_wire(result)
    payload["isValid"] = result.is_valid
    return payload


__all__ = ["to_wire", "validation_wire"]
