"""
BindingResolver Usage Examples.

This module demonstrates how to wire late-bound values into an application:
declare what to load and where to put it, then resolve everything in one
pass and start the application once.

Architecture:
    ┌─────────────────┐      ┌──────────────────┐      ┌─────────────────┐
    │ PendingBinding  │ ──▶  │ BindingResolver  │ ──▶  │  Setter         │
    │ (what + where)  │      │ (load -> set)    │      │  (your object)  │
    └─────────────────┘      └──────────────────┘      └─────────────────┘
                                     │
                                     ▼
                             ┌──────────────────┐
                             │ Action           │
                             │ (once per key)   │
                             └──────────────────┘

Run: python examples/resolver_usage.py
"""

import asyncio
import json
import tempfile
from pathlib import Path

from latebind import (
    ActionSpec,
    BindingResolver,
    FreeFunction,
    LoaderSpec,
    Method,
    ModuleDefinition,
    ModuleLoader,
    ModuleResolution,
    PendingBinding,
    SetterSpec,
    configure_logging,
)


class App:
    """Toy application receiving its settings and services late."""

    def __init__(self):
        self.services = {}
        self.started = 0

    def set_service(self, ref_name, value, result):
        self.services[ref_name] = value

    def start(self, overall_success):
        self.started += 1
        status = "ok" if overall_success else "degraded"
        print(f"App started ({status}) with {sorted(self.services)}")


# =============================================================================
# Example 1: JSON resource with a schema
# =============================================================================


def example_json_resource(config_dir: Path):
    """
    Load a JSON file relative to the loader's base directory, validate it
    and hand it to a method on the application.
    """
    (config_dir / "settings.json").write_text(
        json.dumps({"name": "demo", "port": 8080}), encoding="utf-8"
    )

    app = App()
    resolver = BindingResolver(ModuleLoader(base_dir=config_dir))
    resolver.add(
        PendingBinding(
            ref_name="settings",
            loader=LoaderSpec(
                ModuleDefinition(
                    module_name="settings.json",
                    module_resolution=ModuleResolution.JSON,
                    load_schema={"name": str, "port": int},
                )
            ),
            setter=SetterSpec(Method(app, "set_service")),
            action=ActionSpec(Method(app, "start"), dedup_key="startup"),
        )
    )

    results = resolver.resolve()
    print(f"Settings: {app.services['settings']}")
    print(f"Errors: {BindingResolver.results_have_errors(results)}")


# =============================================================================
# Example 2: Factory functions and a shared startup action
# =============================================================================


def example_shared_action():
    """
    Two bindings share the "startup" action: it runs once, after both
    values are in place.
    """
    app = App()
    resolver = BindingResolver()
    for ref_name, module_name in (("json", "json"), ("paths", "pathlib")):
        resolver.add(
            PendingBinding(
                ref_name=ref_name,
                loader=LoaderSpec(ModuleDefinition(module_name=module_name)),
                setter=SetterSpec(Method(app, "set_service")),
                action=ActionSpec(Method(app, "start"), dedup_key="startup"),
            )
        )

    resolver.resolve()
    print(f"start() called {app.started} time(s)")


# =============================================================================
# Example 3: Asynchronous setters
# =============================================================================


async def example_async_setter():
    """
    A setter returning a coroutine makes the pass asynchronous; resolve()
    then hands back an awaitable.
    """
    store = {}

    async def save(ref_name, value, result):
        await asyncio.sleep(0)
        store[ref_name] = value

    resolver = BindingResolver()
    resolver.add(
        PendingBinding(
            ref_name="codec",
            loader=LoaderSpec(ModuleDefinition(module_name="json", property_name="dumps")),
            setter=SetterSpec(FreeFunction(save)),
        )
    )

    print(f"Expect async pass: {resolver.pending_async}")
    results = await resolver.resolve_async()
    print(f"Suspended: {resolver.last_pass_suspended}, stored: {list(store)}")
    print(f"Audit: {resolver.last_context.to_audit_dict()}")
    return results


# =============================================================================
# Example 4: Failure reporting
# =============================================================================


def example_failure():
    """A missing resource is reported on the result; the action still runs."""
    app = App()
    resolver = BindingResolver()
    resolver.add(PendingBinding(ref_name="missing", loader=LoaderSpec(ModuleDefinition(module_name="no_such_module_here"))))
    resolver.add(PendingBinding(ref_name="boot", action=ActionSpec(Method(app, "start"))))

    for result in resolver.resolve():
        print(f"{result.ref_name}: {result.to_dict()}")


# =============================================================================
# Main: Run Examples
# =============================================================================


async def main():
    """Run examples."""
    configure_logging()

    print("=" * 60)
    print("Example 1: JSON Resource")
    print("=" * 60)
    with tempfile.TemporaryDirectory() as tmp:
        example_json_resource(Path(tmp))

    print("\n" + "=" * 60)
    print("Example 2: Shared Action")
    print("=" * 60)
    example_shared_action()

    print("\n" + "=" * 60)
    print("Example 3: Async Setter")
    print("=" * 60)
    await example_async_setter()

    print("\n" + "=" * 60)
    print("Example 4: Failure Reporting")
    print("=" * 60)
    example_failure()


if __name__ == "__main__":
    asyncio.run(main())
