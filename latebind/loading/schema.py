"""
Load schema validation.

A load schema can be:
    - a pydantic BaseModel subclass
    - a mapping of field name -> type (or (type, default)), compiled into a strict
      pydantic model
    - a check callable, sync or async, returning True/None on success and
      False or a list of messages on failure

Validation never replaces the loaded value: the setter receives exactly what
the loader produced.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Mapping, Sequence
from functools import lru_cache
from typing import Any, Awaitable, Callable

from pydantic import BaseModel, ConfigDict, ValidationError, create_model

from ..errors import SchemaValidationError

logger = logging.getLogger(__name__)

CheckFunction = Callable[[Any], Any]

# Field maps are checked, never coerced: "1" is not an int
_STRICT = ConfigDict(strict=True)


def is_model_schema(schema: Any) -> bool:
    return isinstance(schema, type) and issubclass(schema, BaseModel)


def is_async_check(schema: Any) -> bool:
    """True when validating against ``schema`` will suspend."""
    if schema is None or is_model_schema(schema) or isinstance(schema, Mapping):
        return False
    return inspect.iscoroutinefunction(schema) or inspect.iscoroutinefunction(
        getattr(schema, "__call__", None)
    )


def compile_schema(fields: Mapping[str, Any]) -> type[BaseModel]:
    """
    Compile a field mapping into a pydantic model.

    Example:
        compile_schema({"name": str, "id": int, "label": (str, "A")})
    """
    return _compile_cached(tuple(sorted(fields.items(), key=lambda item: item[0])))


@lru_cache(maxsize=256)
def _compile_cached(items: tuple[tuple[str, Any], ...]) -> type[BaseModel]:
    definitions: dict[str, Any] = {}
    for name, spec in items:
        if isinstance(spec, tuple):
            definitions[name] = spec
        else:
            definitions[name] = (spec, ...)
    return create_model("LoadSchema", __config__=_STRICT, **definitions)


def validate_loaded(value: Any, schema: Any) -> Any | Awaitable[Any]:
    """
    Validate a loaded value.

    Returns:
        ``value`` when validation is synchronous, otherwise an awaitable
        resolving to ``value``.

    Raises:
        SchemaValidationError: When a synchronous check fails
    """
    if schema is None:
        return value

    if isinstance(schema, Mapping):
        try:
            model = compile_schema(schema)
        except TypeError as e:
            # Unhashable field specs cannot be cached
            raise SchemaValidationError(f"Invalid load schema: {e}", cause=e) from e
        return _validate_model(value, model)

    if is_model_schema(schema):
        return _validate_model(value, schema)

    if callable(schema):
        outcome = schema(value)
        if inspect.isawaitable(outcome):
            return _await_check(value, outcome)
        _raise_on_check_failure(outcome)
        return value

    raise SchemaValidationError(f"Unsupported load schema: {schema!r}")


def _validate_model(value: Any, model: type[BaseModel]) -> Any:
    try:
        model.model_validate(value)
    except ValidationError as e:
        messages = [
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
            for err in e.errors()
        ]
        logger.debug(f"[schema] {model.__name__} rejected value: {messages}")
        raise SchemaValidationError(
            f"Loaded value failed schema {model.__name__}: {'; '.join(messages)}",
            errors=messages,
            cause=e,
        ) from e
    return value


async def _await_check(value: Any, pending: Awaitable[Any]) -> Any:
    _raise_on_check_failure(await pending)
    return value


def _raise_on_check_failure(outcome: Any) -> None:
    if outcome is True or outcome is None:
        return
    if outcome is False:
        raise SchemaValidationError("Loaded value failed schema check", errors=["check returned False"])
    if isinstance(outcome, Sequence) and not isinstance(outcome, str | bytes):
        if not outcome:
            return
        messages = [str(item) for item in outcome]
        raise SchemaValidationError(
            f"Loaded value failed schema check: {'; '.join(messages)}",
            errors=messages,
        )
    raise SchemaValidationError(f"Schema check returned unexpected result {outcome!r}")
