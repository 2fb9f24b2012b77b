"""
Binding data model.

A PendingBinding is what callers add to a resolver. A BindingResult is what
the resolver produces for it in one pass.

    PendingBinding(
        ref_name="db",
        loader=LoaderSpec(ModuleDefinition(module_name="myapp.db", function_name="connect")),
        setter=SetterSpec(Method(container, "set_service")),
        action=ActionSpec(FreeFunction(start_app), dedup_key="startup"),
    )
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .errors import ActionError, LoadError, SetError
from .invocation import InvocationTarget
from .loading.definitions import LoadPackageType, ModuleDefinition


# =============================================================================
# Binding specifications
# =============================================================================


@dataclass(frozen=True)
class LoaderSpec:
    """What to load for a binding."""

    module: ModuleDefinition
    load_package_type: LoadPackageType = LoadPackageType.OBJECT


@dataclass(frozen=True)
class SetterSpec:
    """
    Receives the loaded value.

    Called as ``target(ref_name, value, result, *params)``.
    """

    target: InvocationTarget
    params: tuple[Any, ...] = ()


@dataclass(frozen=True)
class ActionSpec:
    """
    Finalization step run after every pipeline of the pass has settled.

    Called as ``target(overall_success, *params)``. Actions sharing a
    ``dedup_key`` run at most once per pass, and not at all if any binding
    carrying that key failed to load or set.
    """

    target: InvocationTarget
    params: tuple[Any, ...] = ()
    dedup_key: str | None = None


@dataclass(frozen=True, eq=False)
class PendingBinding:
    """
    A single unit of late-bound work.

    Compared by identity: adding the same binding twice yields two entries
    and two results.
    """

    ref_name: Any
    loader: LoaderSpec | None = None
    setter: SetterSpec | None = None
    action: ActionSpec | None = None


# =============================================================================
# Results
# =============================================================================


@dataclass
class LoadOutcome:
    succeeded: bool
    value: Any = None
    error: LoadError | None = None


@dataclass
class SetOutcome:
    succeeded: bool
    error: SetError | None = None


@dataclass
class ActionOutcome:
    succeeded: bool
    error: ActionError | None = None


@dataclass
class BindingResult:
    """
    Outcome of one binding in one pass.

    ``load_outcome`` is present iff the binding has a loader, ``set_outcome``
    iff the setter was invoked (which requires a successful load), and
    ``action_outcome`` iff this result was the one that ran its action.
    """

    binding: PendingBinding
    load_outcome: LoadOutcome | None = None
    set_outcome: SetOutcome | None = None
    action_outcome: ActionOutcome | None = None

    @property
    def ref_name(self) -> Any:
        return self.binding.ref_name

    @property
    def value(self) -> Any:
        """Loaded value, or None when nothing was loaded."""
        if self.load_outcome is None:
            return None
        return self.load_outcome.value

    @property
    def has_upstream_errors(self) -> bool:
        """True when the load or the set failed."""
        return (self.load_outcome is not None and self.load_outcome.error is not None) or (
            self.set_outcome is not None and self.set_outcome.error is not None
        )

    @property
    def has_errors(self) -> bool:
        return self.has_upstream_errors or (
            self.action_outcome is not None and self.action_outcome.error is not None
        )

    @property
    def errors(self) -> list[Exception]:
        """All errors recorded on this result, in stage order."""
        found: list[Exception] = []
        for outcome in (self.load_outcome, self.set_outcome, self.action_outcome):
            if outcome is not None and outcome.error is not None:
                found.append(outcome.error)
        return found

    def to_dict(self) -> dict[str, Any]:
        """Serialize for logging."""

        def _outcome(outcome: Any) -> dict[str, Any] | None:
            if outcome is None:
                return None
            return {
                "succeeded": outcome.succeeded,
                "error": str(outcome.error) if outcome.error else None,
            }

        return {
            "ref_name": repr(self.ref_name),
            "load": _outcome(self.load_outcome),
            "set": _outcome(self.set_outcome),
            "action": _outcome(self.action_outcome),
        }
