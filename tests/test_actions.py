"""
Tests for the action phase of a resolve pass.

Covers the barrier after all pipelines, exclusion of failed bindings,
dedup_key grouping and the overall success flag.
"""
import asyncio
import inspect

import pytest

from latebind import (
    ActionError,
    ActionSpec,
    BindingResolver,
    FreeFunction,
    LoaderSpec,
    Method,
    ModuleDefinition,
    PendingBinding,
    SetterSpec,
)


def loader_for(name: str) -> LoaderSpec:
    return LoaderSpec(ModuleDefinition(module_name=name))


class Counter:
    def __init__(self):
        self.count = 0
        self.flags = []

    def increment(self, success, *params):
        self.count += 1
        self.flags.append(success)
        return True


def failing_setter(ref_name, value, result):
    raise ValueError("setter refused")


# =============================================================================
# Deduplication
# =============================================================================


class TestDeduplication:
    """Actions sharing a dedup_key run at most once per pass."""

    def test_shared_key_runs_once(self, settings, stub_loader_cls):
        counter = Counter()
        resolver = BindingResolver(stub_loader_cls({"m": 1}), settings=settings)
        for i in range(3):
            resolver.add(
                PendingBinding(
                    ref_name=f"ref{i}",
                    loader=loader_for("m"),
                    action=ActionSpec(Method(counter, "increment"), dedup_key="dedupId"),
                )
            )

        results = resolver.resolve()

        assert counter.count == 1
        # The first member of the group is the one that ran
        assert results[0].action_outcome.succeeded is True
        assert results[1].action_outcome is None
        assert results[2].action_outcome is None

    def test_failed_member_suppresses_group(self, settings, stub_loader_cls):
        counter = Counter()
        resolver = BindingResolver(
            stub_loader_cls({"m": 1, "bad": RuntimeError("no")}),
            settings=settings,
        )
        resolver.add(
            PendingBinding(
                ref_name="ok1",
                loader=loader_for("m"),
                action=ActionSpec(Method(counter, "increment"), dedup_key="dedupId"),
            )
        )
        resolver.add(
            PendingBinding(
                ref_name="broken",
                loader=loader_for("bad"),
                action=ActionSpec(Method(counter, "increment"), dedup_key="dedupId"),
            )
        )
        resolver.add(
            PendingBinding(
                ref_name="ok2",
                loader=loader_for("m"),
                action=ActionSpec(Method(counter, "increment"), dedup_key="dedupId"),
            )
        )

        results = resolver.resolve()

        assert counter.count == 0
        assert all(result.action_outcome is None for result in results)

    def test_failed_setter_also_suppresses_group(self, settings, stub_loader_cls):
        counter = Counter()
        resolver = BindingResolver(stub_loader_cls({"m": 1}), settings=settings)
        resolver.add(
            PendingBinding(
                ref_name="a",
                loader=loader_for("m"),
                action=ActionSpec(FreeFunction(counter.increment), dedup_key="k"),
            )
        )
        resolver.add(
            PendingBinding(
                ref_name="b",
                loader=loader_for("m"),
                setter=SetterSpec(FreeFunction(failing_setter)),
                action=ActionSpec(FreeFunction(counter.increment), dedup_key="k"),
            )
        )

        resolver.resolve()

        assert counter.count == 0

    def test_action_only_binding_joins_group(self, settings, stub_loader_cls):
        counter = Counter()
        resolver = BindingResolver(stub_loader_cls({"bad": RuntimeError("no")}), settings=settings)
        resolver.add(
            PendingBinding(
                ref_name="broken",
                loader=loader_for("bad"),
                action=ActionSpec(FreeFunction(counter.increment), dedup_key="startup"),
            )
        )
        resolver.add(
            PendingBinding(
                ref_name="starter",
                action=ActionSpec(FreeFunction(counter.increment), dedup_key="startup"),
            )
        )

        resolver.resolve()

        assert counter.count == 0

    def test_actions_without_key_are_not_deduplicated(self, settings, stub_loader_cls):
        counter = Counter()
        resolver = BindingResolver(stub_loader_cls({"m": 1}), settings=settings)
        for i in range(3):
            resolver.add(
                PendingBinding(
                    ref_name=f"ref{i}",
                    loader=loader_for("m"),
                    action=ActionSpec(FreeFunction(counter.increment)),
                )
            )

        resolver.resolve()

        assert counter.count == 3

    def test_distinct_keys_each_run(self, settings, stub_loader_cls):
        counter = Counter()
        resolver = BindingResolver(stub_loader_cls({"m": 1}), settings=settings)
        for key in ("a", "b", "a", "b"):
            resolver.add(
                PendingBinding(
                    ref_name=key,
                    loader=loader_for("m"),
                    action=ActionSpec(FreeFunction(counter.increment), dedup_key=key),
                )
            )

        resolver.resolve()

        assert counter.count == 2

    def test_groups_are_scoped_to_a_pass(self, settings, stub_loader_cls):
        counter = Counter()
        resolver = BindingResolver(stub_loader_cls({"m": 1}), settings=settings)
        action = ActionSpec(FreeFunction(counter.increment), dedup_key="startup")

        resolver.add(PendingBinding(ref_name="a", loader=loader_for("m"), action=action))
        resolver.resolve()
        resolver.add(PendingBinding(ref_name="b", loader=loader_for("m"), action=action))
        resolver.resolve()

        assert counter.count == 2


# =============================================================================
# Invocation
# =============================================================================


class TestActionInvocation:
    """How actions are called and how their outcomes are recorded."""

    def test_method_action_with_params(self, settings, stub_loader_cls):
        received = []

        class Owner:
            def finish(self, success, some_object, number):
                received.append((success, some_object, number))

        some_object = object()
        resolver = BindingResolver(stub_loader_cls({"m": 1}), settings=settings)
        resolver.add(
            PendingBinding(
                ref_name="x",
                loader=loader_for("m"),
                action=ActionSpec(Method(Owner(), "finish"), params=(some_object, 5)),
            )
        )

        result = resolver.resolve()[0]

        assert received == [(True, some_object, 5)]
        assert result.action_outcome.succeeded is True

    def test_overall_success_false_when_other_binding_failed(self, settings, stub_loader_cls):
        counter = Counter()
        resolver = BindingResolver(
            stub_loader_cls({"m": 1, "bad": RuntimeError("no")}),
            settings=settings,
        )
        resolver.add(PendingBinding(ref_name="broken", loader=loader_for("bad")))
        resolver.add(
            PendingBinding(
                ref_name="ok",
                loader=loader_for("m"),
                action=ActionSpec(FreeFunction(counter.increment)),
            )
        )

        resolver.resolve()

        assert counter.flags == [False]

    def test_overall_success_true_when_all_succeed(self, settings, stub_loader_cls):
        counter = Counter()
        resolver = BindingResolver(stub_loader_cls({"m": 1}), settings=settings)
        resolver.add(PendingBinding(ref_name="plain", loader=loader_for("m")))
        resolver.add(
            PendingBinding(ref_name="a", action=ActionSpec(FreeFunction(counter.increment)))
        )

        resolver.resolve()

        assert counter.flags == [True]

    def test_loader_only_binding_keeps_overall_success(self, settings, stub_loader_cls):
        # Only load and set failures count; bindings without an action do not
        counter = Counter()
        resolver = BindingResolver(stub_loader_cls({"m": 1}), settings=settings)
        resolver.add(PendingBinding(ref_name="config", loader=loader_for("m")))
        resolver.add(
            PendingBinding(
                ref_name="service",
                loader=loader_for("m"),
                action=ActionSpec(FreeFunction(counter.increment)),
            )
        )

        results = resolver.resolve()

        assert counter.flags == [True]
        assert results[0].action_outcome is None
        assert results[1].action_outcome.succeeded is True

    def test_failed_binding_action_not_invoked(self, settings, stub_loader_cls):
        counter = Counter()
        resolver = BindingResolver(stub_loader_cls({"bad": RuntimeError("no")}), settings=settings)
        resolver.add(
            PendingBinding(
                ref_name="broken",
                loader=loader_for("bad"),
                action=ActionSpec(FreeFunction(counter.increment)),
            )
        )

        result = resolver.resolve()[0]

        assert counter.count == 0
        assert result.action_outcome is None

    def test_action_exception_recorded(self, settings, stub_loader_cls):
        def explode(success):
            raise RuntimeError("action failed")

        counter = Counter()
        resolver = BindingResolver(stub_loader_cls({"m": 1}), settings=settings)
        resolver.add(PendingBinding(ref_name="a", loader=loader_for("m"), action=ActionSpec(FreeFunction(explode))))
        resolver.add(PendingBinding(ref_name="b", loader=loader_for("m"), action=ActionSpec(FreeFunction(counter.increment))))

        results = resolver.resolve()

        assert results[0].load_outcome.succeeded is True
        assert results[0].action_outcome.succeeded is False
        assert isinstance(results[0].action_outcome.error, ActionError)
        assert isinstance(results[0].action_outcome.error.cause, RuntimeError)
        assert counter.count == 1
        assert resolver.has_resolution_errors() is True

    def test_actions_run_after_all_setters(self, settings, stub_loader_cls):
        events = []

        def setter(ref_name, value, result):
            events.append(f"set:{ref_name}")

        def action(success):
            events.append("action")

        resolver = BindingResolver(stub_loader_cls({"m": 1}), settings=settings)
        resolver.add(
            PendingBinding(
                ref_name="a",
                loader=loader_for("m"),
                setter=SetterSpec(FreeFunction(setter)),
                action=ActionSpec(FreeFunction(action)),
            )
        )
        resolver.add(PendingBinding(ref_name="b", loader=loader_for("m"), setter=SetterSpec(FreeFunction(setter))))

        resolver.resolve()

        assert events == ["set:a", "set:b", "action"]


# =============================================================================
# Asynchronous actions
# =============================================================================


class TestAsyncActions:
    """Actions returning awaitables."""

    @pytest.mark.asyncio
    async def test_async_action_makes_pass_awaitable(self, settings, stub_loader_cls):
        calls = []

        async def finish(success):
            await asyncio.sleep(0)
            calls.append(success)

        resolver = BindingResolver(stub_loader_cls({"m": 1}), settings=settings)
        resolver.add(PendingBinding(ref_name="a", loader=loader_for("m"), action=ActionSpec(FreeFunction(finish))))

        outcome = resolver.resolve()

        assert inspect.isawaitable(outcome)
        assert resolver.is_resolving is True
        results = await outcome
        assert calls == [True]
        assert results[0].action_outcome.succeeded is True
        assert resolver.is_resolving is False
        assert resolver.last_pass_suspended is True

    @pytest.mark.asyncio
    async def test_async_action_rejection_does_not_block_others(self, settings, stub_loader_cls):
        counter = Counter()

        async def reject(success):
            raise ConnectionError("remote down")

        resolver = BindingResolver(stub_loader_cls({"m": 1}), settings=settings)
        resolver.add(PendingBinding(ref_name="a", loader=loader_for("m"), action=ActionSpec(FreeFunction(reject))))
        resolver.add(PendingBinding(ref_name="b", loader=loader_for("m"), action=ActionSpec(FreeFunction(counter.increment))))

        results = await resolver.resolve_async()

        assert isinstance(results[0].action_outcome.error, ActionError)
        assert isinstance(results[0].action_outcome.error.cause, ConnectionError)
        assert results[1].action_outcome.succeeded is True
        assert counter.count == 1

    @pytest.mark.asyncio
    async def test_actions_wait_for_async_loads(self, settings, stub_loader_cls):
        events = []

        async def load():
            await asyncio.sleep(0)
            events.append("loaded")
            return 1

        def action(success):
            events.append(f"action:{success}")

        resolver = BindingResolver(stub_loader_cls({"slow": load, "fast": 2}), settings=settings)
        resolver.add(PendingBinding(ref_name="slow", loader=loader_for("slow")))
        resolver.add(PendingBinding(ref_name="fast", loader=loader_for("fast"), action=ActionSpec(FreeFunction(action))))

        outcome = resolver.resolve()

        assert events == []
        await outcome
        assert events == ["loaded", "action:True"]

    @pytest.mark.asyncio
    async def test_async_dedup_group_runs_once(self, settings, stub_loader_cls):
        calls = []

        async def load():
            return 1

        async def finish(success, tag):
            calls.append(tag)

        resolver = BindingResolver(stub_loader_cls({"m": load}), settings=settings)
        for i in range(3):
            resolver.add(
                PendingBinding(
                    ref_name=i,
                    loader=loader_for("m"),
                    action=ActionSpec(FreeFunction(finish), params=(i,), dedup_key="done"),
                )
            )

        await resolver.resolve_async()

        assert calls == [0]
