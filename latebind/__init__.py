"""
latebind - resolve late-bound values without hand-written promise plumbing.

latebind loads values from modules, factories and JSON/YAML resources,
hands them to setters and runs deduplicated finalization actions once every
related binding has settled, whether the work is synchronous or async.

- **Bindings**: load -> set -> action, declared as data
- **Mixed execution**: sync work runs inline, async work is awaited
  concurrently; the pass is async only if something actually suspended
- **Error isolation**: one failing binding never stops the others
- **Incremental passes**: add more bindings and resolve again

Quick Start:
    >>> from latebind import BindingResolver, PendingBinding, LoaderSpec, SetterSpec
    >>> from latebind import FreeFunction, ModuleDefinition
    >>>
    >>> registry = {}
    >>> def register(ref_name, value, result):
    ...     registry[ref_name] = value
    >>>
    >>> resolver = BindingResolver()
    >>> resolver.add(PendingBinding(
    ...     ref_name="decoder",
    ...     loader=LoaderSpec(ModuleDefinition(module_name="json", property_name="JSONDecoder")),
    ...     setter=SetterSpec(FreeFunction(register)),
    ... ))
    >>> results = await resolver.resolve_async()
"""

__version__ = "0.1.0"
__license__ = "MIT"

from latebind.bindings import (
    ActionOutcome,
    ActionSpec,
    BindingResult,
    LoaderSpec,
    LoadOutcome,
    PendingBinding,
    SetOutcome,
    SetterSpec,
)
from latebind.config import ResolverSettings, configure_logging, get_settings
from latebind.context import ResolutionContext
from latebind.errors import (
    ActionError,
    InvalidBindingError,
    InvalidStateError,
    InvocationShapeError,
    LatebindError,
    LoadError,
    SchemaValidationError,
    SetError,
)
from latebind.invocation import FreeFunction, InvocationTarget, Method, target_from_spec
from latebind.loading import LoadPackageType, ModuleDefinition, ModuleLoader, ModuleResolution
from latebind.resolver import BindingResolver

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Resolver
    "BindingResolver",
    "ResolutionContext",
    # Bindings
    "PendingBinding",
    "LoaderSpec",
    "SetterSpec",
    "ActionSpec",
    "BindingResult",
    "LoadOutcome",
    "SetOutcome",
    "ActionOutcome",
    # Invocation
    "FreeFunction",
    "Method",
    "InvocationTarget",
    "target_from_spec",
    # Loading
    "ModuleDefinition",
    "ModuleLoader",
    "ModuleResolution",
    "LoadPackageType",
    # Config
    "ResolverSettings",
    "get_settings",
    "configure_logging",
    # Errors
    "LatebindError",
    "InvalidStateError",
    "InvalidBindingError",
    "InvocationShapeError",
    "LoadError",
    "SchemaValidationError",
    "SetError",
    "ActionError",
]
