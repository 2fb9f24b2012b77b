"""
Exceptions for latebind.

Two families of errors exist:

Structural errors are raised straight to the caller of ``add``, ``resolve``
or ``clear`` (or to whoever builds a malformed invocation target) and abort
that call:
    - InvalidStateError
    - InvalidBindingError
    - InvocationShapeError

Operational errors belong to a single binding. The resolver captures them on
the binding's result and keeps going with the rest of the pass:
    - LoadError (and SchemaValidationError)
    - SetError
    - ActionError
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class Stage(str, Enum):
    """Per-binding stage an operational error belongs to."""

    LOAD = "load"
    SET = "set"
    ACTION = "action"


class LatebindError(Exception):
    """Base exception for all latebind errors."""


# =============================================================================
# Structural errors
# =============================================================================


class InvalidStateError(LatebindError):
    """Mutating or re-entering a resolver while a pass is in flight."""


class InvalidBindingError(LatebindError):
    """A binding that can never produce any work."""


class InvocationShapeError(LatebindError):
    """Owner/function mismatch on a setter or action target."""


# =============================================================================
# Operational errors
# =============================================================================


class BindingStageError(LatebindError):
    """
    Failure of one stage of one binding.

    Attributes:
        stage: Stage that failed
        ref_name: Reference name of the binding, when known
        cause: Underlying exception, also chained as ``__cause__``
    """

    stage: Stage = Stage.LOAD

    def __init__(
        self,
        message: str,
        *,
        ref_name: Any = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.ref_name = ref_name
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    @classmethod
    def wrap(cls, exc: BaseException, *, ref_name: Any = None) -> BindingStageError:
        """Wrap ``exc`` unless it already is an error of this stage."""
        if isinstance(exc, cls):
            if exc.ref_name is None:
                exc.ref_name = ref_name
            return exc
        return cls(
            f"{cls.stage.value} failed for {ref_name!r}: {exc}",
            ref_name=ref_name,
            cause=exc,
        )

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else self.stage.value


class LoadError(BindingStageError):
    """The loader could not produce a value."""

    stage = Stage.LOAD


class SchemaValidationError(LoadError):
    """The loaded value did not satisfy its load schema."""

    def __init__(
        self,
        message: str,
        *,
        errors: list[str] | None = None,
        ref_name: Any = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message, ref_name=ref_name, cause=cause)
        self.errors = list(errors or [])


class SetError(BindingStageError):
    """The setter raised or its awaitable was rejected."""

    stage = Stage.SET


class ActionError(BindingStageError):
    """A finalization action raised or its awaitable was rejected."""

    stage = Stage.ACTION
