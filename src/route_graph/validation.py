"""
Input validation for route graphs.

Provides reusable validators that produce clear error messages for route
trees, layout settings and server tool parameters.
"""

from __future__ import annotations

import re
from typing import Any


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class ValidationError(Exception):
    """Raised when input validation fails."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class UnknownDirection(ValidationError):
    """Raised for a draw direction outside TB / BT / LR / RL."""


class StructuralViolation(ValidationError):
    """Raised when a route tree or edge list breaks a structural invariant.

    Duplicate route ids, edges pointing at absent nodes and cyclic edge lists
    all mean the route source is broken; they are never repaired.
    """


# ---------------------------------------------------------------------------
# Primitive validators
# ---------------------------------------------------------------------------

def validate_non_empty_string(value: Any, field_name: str) -> str:
    """Ensure *value* is a non-empty string after stripping whitespace."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"'{field_name}' must be a non-empty string.")
    return value.strip()


def validate_string(value: Any, field_name: str, *, allow_empty: bool = True) -> str:
    """Ensure *value* is a string (optionally non-empty)."""
    if not isinstance(value, str):
        raise ValidationError(f"'{field_name}' must be a string, got {type(value).__name__}.")
    if not allow_empty and not value.strip():
        raise ValidationError(f"'{field_name}' must not be empty.")
    return value


def validate_color(value: Any, field_name: str) -> str:
    """Validate a CSS-style hex color (#RGB, #RRGGBB, #RRGGBBAA)."""
    if not isinstance(value, str):
        raise ValidationError(f"'{field_name}' must be a color string, got {type(value).__name__}.")
    value = value.strip()
    if not re.match(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$", value):
        raise ValidationError(
            f"'{field_name}' must be a valid hex color (#RGB, #RRGGBB, or #RRGGBBAA), got '{value}'."
        )
    return value


def validate_number(
    value: Any,
    field_name: str,
    *,
    min_val: float | None = None,
    max_val: float | None = None,
) -> float:
    """Validate a numeric value and optional range."""
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        raise ValidationError(
            f"'{field_name}' must be a number, got {type(value).__name__}."
        )
    val = float(value)
    if min_val is not None and val < min_val:
        raise ValidationError(
            f"'{field_name}' must be >= {min_val}, got {val}."
        )
    if max_val is not None and val > max_val:
        raise ValidationError(
            f"'{field_name}' must be <= {max_val}, got {val}."
        )
    return val


def validate_positive_number(value: Any, field_name: str) -> float:
    """Validate that a number is positive (> 0)."""
    return validate_number(value, field_name, min_val=0.001)


def validate_non_negative_number(value: Any, field_name: str) -> float:
    """Validate that a number is >= 0."""
    return validate_number(value, field_name, min_val=0)


def validate_enum(value: Any, field_name: str, allowed: set[str]) -> str:
    """Validate that a string value is one of the allowed choices (case-insensitive)."""
    if not isinstance(value, str):
        raise ValidationError(
            f"'{field_name}' must be a string, got {type(value).__name__}."
        )
    normalized = value.strip().upper()
    if normalized not in {a.upper() for a in allowed}:
        choices = ", ".join(sorted(allowed))
        raise ValidationError(
            f"'{field_name}' must be one of [{choices}], got '{value}'."
        )
    return normalized


def validate_dict(value: Any, field_name: str) -> dict:
    """Ensure *value* is a dict."""
    if not isinstance(value, dict):
        raise ValidationError(
            f"'{field_name}' must be a dict/object, got {type(value).__name__}."
        )
    return value


# ---------------------------------------------------------------------------
# Domain validators
# ---------------------------------------------------------------------------

_VALID_DIRECTIONS = {"TB", "BT", "LR", "RL"}

_SESSION_ACTIONS = {"CREATE", "SET_ROUTE", "GET", "LIST", "DELETE"}
_INTERACT_ACTIONS = {"DIRECTION", "CLICK", "FOCUS", "FIT"}


def validate_action(value: Any, tool_name: str, allowed: set[str]) -> str:
    """Validate the action parameter for a tool."""
    if not isinstance(value, str) or not value.strip():
        choices = ", ".join(sorted(a.lower() for a in allowed))
        raise ValidationError(
            f"'{tool_name}' requires an 'action' parameter. Valid actions: {choices}."
        )
    normalized = value.strip().upper()
    if normalized not in allowed:
        choices = ", ".join(sorted(a.lower() for a in allowed))
        raise ValidationError(
            f"Unknown {tool_name} action '{value}'. Valid actions: {choices}."
        )
    return value.strip().lower()


def validate_direction(value: Any) -> str:
    """Validate a layout direction (TB, BT, LR, RL)."""
    try:
        return validate_enum(value, "direction", _VALID_DIRECTIONS)
    except ValidationError as exc:
        raise UnknownDirection(exc.message) from exc


def validate_route_dict(value: Any, path: str = "route") -> dict:
    """Validate the JSON shape of a route tree.

    Every level needs string ``id`` and ``path``; ``name`` is optional and
    ``routes`` is an optional mapping of child key to child route.
    Route ids must be unique across the whole tree.
    """
    _check_route_dict(value, path, set())
    return value


def _check_route_dict(value: Any, path: str, seen: set[str]) -> None:
    if not isinstance(value, dict):
        raise ValidationError(
            f"'{path}' must be a dict/object, got {type(value).__name__}."
        )
    route_id = validate_non_empty_string(value.get("id"), f"{path}.id")
    validate_string(value.get("path"), f"{path}.path")
    if value.get("name") is not None:
        validate_string(value["name"], f"{path}.name")
    if route_id in seen:
        raise StructuralViolation(f"Duplicate route id '{route_id}' at '{path}'.")
    seen.add(route_id)

    children = value.get("routes")
    if children is None:
        return
    validate_dict(children, f"{path}.routes")
    for key, child in children.items():
        _check_route_dict(child, f"{path}.routes.{key}", seen)
