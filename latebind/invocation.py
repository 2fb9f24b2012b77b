"""
Invocation targets for setters and actions.

A target is either a free function or a method looked up by name on an
owning object. Shape mistakes (a method name without an owner, a function
reference with an owner) are rejected when the target is built, never when
it is called.

Usage:
    FreeFunction(store_config)
    Method(registry, "register")
    target_from_spec(owner_is_object=True, function="register", object_ref=registry)
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import Any, Callable, Union

from .errors import InvocationShapeError


@dataclass(frozen=True)
class FreeFunction:
    """A plain callable invoked directly."""

    function: Callable[..., Any]
    is_async: bool = False

    def __post_init__(self) -> None:
        if isinstance(self.function, str):
            raise InvocationShapeError(
                f"Invalid function {self.function!r} without an owning object - "
                "it should be a callable (not a method name)"
            )
        if not callable(self.function):
            raise InvocationShapeError(f"Invalid function {self.function!r} - it is not callable")

    @property
    def declares_async(self) -> bool:
        return self.is_async or inspect.iscoroutinefunction(self.function)

    @property
    def label(self) -> str:
        return getattr(self.function, "__qualname__", repr(self.function))

    def invoke(self, *args: Any) -> Any:
        return self.function(*args)


@dataclass(frozen=True)
class Method:
    """A method name resolved on ``owner`` at call time."""

    owner: Any
    method_name: str
    is_async: bool = False

    def __post_init__(self) -> None:
        if self.owner is None:
            raise InvocationShapeError(
                f"Invalid method {self.method_name!r} - an owning object is required"
            )
        if not isinstance(self.method_name, str):
            raise InvocationShapeError(
                f"Invalid method {self.method_name!r} for an owning object - "
                "it should be a method name (not a function)"
            )

    @property
    def declares_async(self) -> bool:
        if self.is_async:
            return True
        return inspect.iscoroutinefunction(getattr(self.owner, self.method_name, None))

    @property
    def label(self) -> str:
        return f"{type(self.owner).__name__}.{self.method_name}"

    def invoke(self, *args: Any) -> Any:
        # A missing attribute surfaces as an operational failure of the call
        return getattr(self.owner, self.method_name)(*args)


InvocationTarget = Union[FreeFunction, Method]


def target_from_spec(
    owner_is_object: bool,
    function: str | Callable[..., Any],
    object_ref: Any = None,
    *,
    is_async: bool = False,
) -> InvocationTarget:
    """
    Build a target from the loose "owner flag + function-or-name" shape.

    Args:
        owner_is_object: Whether ``function`` names a method of ``object_ref``
        function: Method name (owner) or callable (no owner)
        object_ref: Owning object when ``owner_is_object`` is true
        is_async: Hint that the call returns an awaitable

    Raises:
        InvocationShapeError: If the flag and ``function`` disagree
    """
    if owner_is_object:
        if not isinstance(function, str):
            raise InvocationShapeError(
                f"Invalid owner function {function!r} for owner_is_object=True - "
                "it should be a string (not a function)"
            )
        return Method(owner=object_ref, method_name=function, is_async=is_async)

    if isinstance(function, str):
        raise InvocationShapeError(
            f"Invalid owner function {function!r} for owner_is_object=False - "
            "it should be a function (not a string)"
        )
    return FreeFunction(function=function, is_async=is_async)
