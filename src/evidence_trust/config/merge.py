"""Field-by-field merging of partial configuration overrides."""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any, TypeVar, Union

from pydantic import BaseModel, ValidationError

from evidence_trust.utils.errors import ConfigurationError

M = TypeVar("M", bound=BaseModel)

Overrides = Union[Mapping[str, Any], BaseModel, None]

WEIGHT_TOLERANCE = 0.01


def _as_mapping(overrides: Mapping[str, Any] | BaseModel) -> Mapping[str, Any]:
    if isinstance(overrides, BaseModel):
        # Only fields the caller actually set count as overrides.
        return {name: getattr(overrides, name) for name in overrides.model_fields_set}
    return overrides


def merge_config(base: M, overrides: Overrides = None) -> M:
    """Return a new config with ``overrides`` laid over ``base``.

    Nested models merge recursively, dict fields merge key by key and every
    other field is replaced. ``base`` is never mutated.
    """
    if overrides is None:
        return base.model_copy(deep=True)

    model_cls = type(base)
    values = _as_mapping(overrides)
    unknown = set(values) - set(model_cls.model_fields)
    if unknown:
        raise ConfigurationError(
            f"Unknown {model_cls.__name__} option(s): {', '.join(sorted(unknown))}"
        )

    data: dict[str, Any] = {}
    for name in model_cls.model_fields:
        current = getattr(base, name)
        if name not in values:
            data[name] = current
            continue
        value = values[name]
        if isinstance(current, BaseModel) and isinstance(value, (Mapping, BaseModel)):
            value = merge_config(current, value)
        elif isinstance(current, dict) and isinstance(value, Mapping):
            value = {**current, **value}
        data[name] = value

    try:
        return model_cls.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid {model_cls.__name__}", details=str(exc)) from exc


def validate_weights(weights: Mapping[str, float], name: str) -> None:
    """Raise ConfigurationError unless ``weights`` sum to 1.0 within tolerance."""
    total = sum(weights.values())
    if abs(total - 1.0) > WEIGHT_TOLERANCE:
        raise ConfigurationError(
            f"{name} weights must sum to 1.0",
            details=f"got {total:.3f} from {dict(weights)}",
        )
    negative = [k for k, v in weights.items() if v < 0]
    if negative:
        raise ConfigurationError(f"{name} weights must be non-negative", details=", ".join(negative))
