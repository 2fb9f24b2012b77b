"""
Binding Resolver.

Drives a batch of PendingBindings through load -> set -> action.

Execution Model:
    1. Every binding not yet resolved runs its pipeline: load, then set.
       Synchronous work runs to completion as soon as it is reached; a
       binding whose loader or setter returns an awaitable continues later,
       concurrently with the other suspended bindings.
    2. Once every pipeline has settled, the action phase runs (barrier):
       failed bindings are excluded, actions are deduplicated by dedup_key
       and each survivor is invoked once with the overall success flag.
    3. Results are appended to the registry and returned.

resolve() returns the list of results directly when nothing in the pass
suspended, and an awaitable of that list otherwise. Use resolve_async() to
always get a coroutine.

Usage:
    resolver = BindingResolver()
    resolver.add(PendingBinding(
        ref_name="settings",
        loader=LoaderSpec(ModuleDefinition(module_name="settings.json",
                                           module_resolution=ModuleResolution.JSON)),
        setter=SetterSpec(Method(app, "set_settings")),
    ))
    results = await resolver.resolve_async()
    if BindingResolver.results_have_errors(results):
        ...
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections.abc import Iterable
from typing import Any, Awaitable, Union

from .bindings import (
    ActionOutcome,
    BindingResult,
    LoadOutcome,
    PendingBinding,
    SetOutcome,
)
from .config import ResolverSettings, get_settings
from .context import ResolutionContext
from .errors import (
    ActionError,
    InvalidBindingError,
    InvalidStateError,
    LoadError,
    SetError,
)
from .loading import Loader, ModuleLoader, module_definition_is_async
from .observability import JSONLogger, KeyValueLogger, ResolverLogger

logger = logging.getLogger(__name__)

ResolveOutcome = Union[list[BindingResult], Awaitable[list[BindingResult]]]


class BindingResolver:
    """
    Registry and orchestrator for deferred bindings.

    State:
        pending: every binding added since construction or the last clear()
        results: one result per binding resolved so far, in pending order
        is_resolving: True while a pass is in flight; add/clear/resolve
            raise InvalidStateError meanwhile
    """

    def __init__(
        self,
        loader: Loader | None = None,
        *,
        events: ResolverLogger | None = None,
        settings: ResolverSettings | None = None,
    ):
        """
        Initialize resolver.

        Args:
            loader: Loader for binding loader specs (ModuleLoader if None)
            events: Structured event logger (built from settings if None)
            settings: Settings (environment settings if None)
        """
        settings = settings or get_settings()
        self._loader = loader
        self._settings = settings
        if events is None:
            inner = (
                JSONLogger(name=settings.logger_name)
                if settings.json_logs
                else KeyValueLogger(name=settings.logger_name)
            )
            events = ResolverLogger(inner=inner)
        self._events = events

        self._pending: list[PendingBinding] = []
        self._results: list[BindingResult] = []
        self._is_resolving = False
        self._pending_async = False
        self._last_pass_suspended = False
        self._last_context: ResolutionContext | None = None

    # ==================== State ====================

    @property
    def loader(self) -> Loader:
        if self._loader is None:
            self._loader = ModuleLoader(base_dir=self._settings.base_dir)
        return self._loader

    @property
    def pending(self) -> tuple[PendingBinding, ...]:
        return tuple(self._pending)

    @property
    def results(self) -> tuple[BindingResult, ...]:
        return tuple(self._results)

    @property
    def is_resolving(self) -> bool:
        return self._is_resolving

    @property
    def pending_async(self) -> bool:
        """
        Advisory: whether the next pass will probably suspend.

        Derived from static hints when bindings are added; never consulted
        by the resolver itself.
        """
        return self._pending_async

    @property
    def last_pass_suspended(self) -> bool:
        """Whether the most recent pass returned an awaitable."""
        return self._last_pass_suspended

    @property
    def last_context(self) -> ResolutionContext | None:
        return self._last_context

    # ==================== Registry ====================

    def add(self, binding: PendingBinding) -> None:
        """
        Queue a binding for the next pass.

        Raises:
            InvalidStateError: While a pass is in flight
            InvalidBindingError: If the binding has neither loader nor action,
                or its ref_name is a function
        """
        if self._is_resolving:
            raise InvalidStateError("Cannot add while a resolve pass is in progress")
        if binding.loader is None and binding.action is None:
            raise InvalidBindingError(
                f"Binding {binding.ref_name!r} needs at least one of loader or action"
            )
        if inspect.isroutine(binding.ref_name):
            raise InvalidBindingError(
                f"Binding ref_name must not be a function: {binding.ref_name!r}"
            )

        if not self._pending_async and _declares_async(binding):
            self._pending_async = True
        self._pending.append(binding)
        logger.debug(f"[resolver] Added binding {binding.ref_name!r} (pending={len(self._pending)})")

    def has_pending(self, ref_name: Any) -> bool:
        return any(binding.ref_name == ref_name for binding in self._pending)

    def has_outstanding_work(self) -> bool:
        return self._is_resolving or len(self._pending) != len(self._results)

    def clear(self) -> None:
        """
        Forget every binding and result.

        Raises:
            InvalidStateError: While a pass is in flight
        """
        if self._is_resolving:
            raise InvalidStateError("Cannot clear while a resolve pass is in progress")
        self._pending = []
        self._results = []
        self._pending_async = False
        logger.debug("[resolver] Cleared")

    @staticmethod
    def results_have_errors(results: Iterable[BindingResult]) -> bool:
        """True if any result carries a load, set or action error."""
        return any(result.has_errors for result in results)

    def has_resolution_errors(self) -> bool:
        return self.results_have_errors(self._results)

    # ==================== Resolve pass ====================

    def resolve(self, ctx: ResolutionContext | None = None) -> ResolveOutcome:
        """
        Resolve every binding added since the previous pass.

        Args:
            ctx: Context for this pass (created if not provided)

        Returns:
            This pass's results, or an awaitable of them if anything in the
            pass was asynchronous. An empty list if there is nothing to do.

        The awaitable must be awaited: the suspended bindings, the actions and
        the return to idle only happen while it runs. A dropped awaitable
        leaves the resolver resolving, so add(), clear() and resolve() keep
        raising InvalidStateError.

        Raises:
            InvalidStateError: If a pass is already in flight
        """
        if self._is_resolving:
            raise InvalidStateError("Cannot launch resolve again while a pass is in progress")

        unresolved = self._pending[len(self._results):]
        if not unresolved:
            self._last_pass_suspended = False
            return []

        self._is_resolving = True
        try:
            ctx = ctx or ResolutionContext()
            ctx.incremental = bool(self._results)
            ctx.binding_count = len(unresolved)
            self._last_context = ctx
            events = self._events.for_pass(ctx.short_id)
            events.pass_started(binding_count=len(unresolved), incremental=ctx.incremental)

            started = time.perf_counter()
            outcomes = [self._run_pipeline(binding, events) for binding in unresolved]
            if any(inspect.isawaitable(outcome) for outcome in outcomes):
                return self._resolve_suspended(outcomes, ctx, events, started)

            results: list[BindingResult] = outcomes  # type: ignore[assignment]
            ctx.record_timing("pipelines", (time.perf_counter() - started) * 1000)

            started = time.perf_counter()
            actions = self._run_actions(results, events)
            if actions is not None:
                return self._finish_suspended_actions(actions, results, ctx, events, started)
            ctx.record_timing("actions", (time.perf_counter() - started) * 1000)

            return self._settle(results, ctx, events, suspended=False)
        except BaseException:
            self._is_resolving = False
            raise

    async def resolve_async(self, ctx: ResolutionContext | None = None) -> list[BindingResult]:
        """Coroutine form of resolve(), whether or not the pass suspends."""
        outcome = self.resolve(ctx)
        if inspect.isawaitable(outcome):
            return await outcome
        return outcome

    async def _resolve_suspended(
        self,
        outcomes: list[BindingResult | Awaitable[BindingResult]],
        ctx: ResolutionContext,
        events: ResolverLogger,
        started: float,
    ) -> list[BindingResult]:
        try:
            results = await _gather_mixed(outcomes)
            ctx.record_timing("pipelines", (time.perf_counter() - started) * 1000)

            started = time.perf_counter()
            actions = self._run_actions(results, events)
            if actions is not None:
                await actions
            ctx.record_timing("actions", (time.perf_counter() - started) * 1000)

            return self._settle(results, ctx, events, suspended=True)
        finally:
            self._is_resolving = False

    async def _finish_suspended_actions(
        self,
        actions: Awaitable[None],
        results: list[BindingResult],
        ctx: ResolutionContext,
        events: ResolverLogger,
        started: float,
    ) -> list[BindingResult]:
        try:
            await actions
            ctx.record_timing("actions", (time.perf_counter() - started) * 1000)
            return self._settle(results, ctx, events, suspended=True)
        finally:
            self._is_resolving = False

    def _settle(
        self,
        results: list[BindingResult],
        ctx: ResolutionContext,
        events: ResolverLogger,
        *,
        suspended: bool,
    ) -> list[BindingResult]:
        self._results.extend(results)
        self._is_resolving = False
        self._pending_async = False
        self._last_pass_suspended = suspended

        ctx.suspended = suspended
        ctx.mark_completed()
        events.pass_completed(
            result_count=len(results),
            error_count=sum(1 for result in results if result.has_errors),
            suspended=suspended,
            duration_ms=ctx.elapsed_ms,
        )
        return results

    # ==================== Per-binding pipeline ====================

    def _run_pipeline(
        self,
        binding: PendingBinding,
        events: ResolverLogger,
    ) -> BindingResult | Awaitable[BindingResult]:
        result = BindingResult(binding=binding)
        if binding.loader is None:
            # Carries the action through to the action phase
            return result

        try:
            loaded = self.loader.load(binding.loader)
        except Exception as e:
            self._record_load_failure(result, e, events)
            return result

        if inspect.isawaitable(loaded):
            return self._finish_load(result, loaded, events)
        return self._apply_loaded(result, loaded, events)

    async def _finish_load(
        self,
        result: BindingResult,
        pending: Awaitable[Any],
        events: ResolverLogger,
    ) -> BindingResult:
        try:
            value = await pending
        except Exception as e:
            self._record_load_failure(result, e, events)
            return result

        applied = self._apply_loaded(result, value, events)
        if inspect.isawaitable(applied):
            return await applied
        return applied

    def _apply_loaded(
        self,
        result: BindingResult,
        value: Any,
        events: ResolverLogger,
    ) -> BindingResult | Awaitable[BindingResult]:
        result.load_outcome = LoadOutcome(succeeded=True, value=value)

        setter = result.binding.setter
        if setter is None:
            return result

        try:
            returned = setter.target.invoke(result.ref_name, value, result, *setter.params)
        except Exception as e:
            self._record_set_failure(result, e, events)
            return result

        if inspect.isawaitable(returned):
            return self._finish_set(result, returned, events)
        result.set_outcome = SetOutcome(succeeded=True)
        return result

    async def _finish_set(
        self,
        result: BindingResult,
        pending: Awaitable[Any],
        events: ResolverLogger,
    ) -> BindingResult:
        try:
            await pending
        except Exception as e:
            self._record_set_failure(result, e, events)
            return result
        result.set_outcome = SetOutcome(succeeded=True)
        return result

    def _record_load_failure(
        self,
        result: BindingResult,
        exc: Exception,
        events: ResolverLogger,
    ) -> None:
        error = LoadError.wrap(exc, ref_name=result.ref_name)
        result.load_outcome = LoadOutcome(succeeded=False, error=error)
        events.load_failed(result.ref_name, error)

    def _record_set_failure(
        self,
        result: BindingResult,
        exc: Exception,
        events: ResolverLogger,
    ) -> None:
        setter = result.binding.setter
        error = SetError.wrap(exc, ref_name=result.ref_name)
        result.set_outcome = SetOutcome(succeeded=False, error=error)
        events.setter_failed(result.ref_name, setter.target.label if setter else "", error)

    # ==================== Action phase ====================

    def _run_actions(
        self,
        results: list[BindingResult],
        events: ResolverLogger,
    ) -> Awaitable[None] | None:
        """
        Invoke the surviving actions of a pass.

        Returns None when every invoked action completed synchronously,
        otherwise an awaitable that settles once all of them have.

        overall_success is True when no result of the pass failed to load or
        set; bindings without an action (loader-only) do not make it False.
        """
        actionable = [result for result in results if result.binding.action is not None]
        if not actionable:
            return None

        # Keys seen in this phase; a failed member consumes its key for good
        consumed: set[str] = set()
        failed_keys: set[str] = set()
        clean: list[BindingResult] = []
        for result in actionable:
            key = result.binding.action.dedup_key
            if result.has_upstream_errors:
                if key is not None:
                    consumed.add(key)
                    failed_keys.add(key)
                events.action_skipped(result.ref_name, key, "upstream failure")
            else:
                clean.append(result)

        survivors: list[BindingResult] = []
        for result in clean:
            key = result.binding.action.dedup_key
            if key is None:
                survivors.append(result)
            elif key in consumed:
                reason = "dedup group failed" if key in failed_keys else "duplicate"
                events.action_skipped(result.ref_name, key, reason)
            else:
                consumed.add(key)
                survivors.append(result)

        overall_success = not any(result.has_upstream_errors for result in results)
        logger.debug(
            f"[resolver] Invoking {len(survivors)} action(s), overall_success={overall_success}"
        )

        pending: list[Awaitable[None]] = []
        for result in survivors:
            outcome = self._invoke_action(result, overall_success, events)
            if outcome is not None:
                pending.append(outcome)

        if pending:
            return _gather_all(pending)
        return None

    def _invoke_action(
        self,
        result: BindingResult,
        overall_success: bool,
        events: ResolverLogger,
    ) -> Awaitable[None] | None:
        action = result.binding.action
        try:
            returned = action.target.invoke(overall_success, *action.params)
        except Exception as e:
            self._record_action_failure(result, e, events)
            return None

        if inspect.isawaitable(returned):
            return self._finish_action(result, returned, events)
        result.action_outcome = ActionOutcome(succeeded=True)
        return None

    async def _finish_action(
        self,
        result: BindingResult,
        pending: Awaitable[Any],
        events: ResolverLogger,
    ) -> None:
        try:
            await pending
        except Exception as e:
            self._record_action_failure(result, e, events)
            return
        result.action_outcome = ActionOutcome(succeeded=True)

    def _record_action_failure(
        self,
        result: BindingResult,
        exc: Exception,
        events: ResolverLogger,
    ) -> None:
        action = result.binding.action
        error = ActionError.wrap(exc, ref_name=result.ref_name)
        result.action_outcome = ActionOutcome(succeeded=False, error=error)
        events.action_failed(result.ref_name, action.target.label, error)

    def __repr__(self) -> str:
        return (
            f"BindingResolver(pending={len(self._pending)}, results={len(self._results)}, "
            f"is_resolving={self._is_resolving})"
        )


# =============================================================================
# Helpers
# =============================================================================


def _declares_async(binding: PendingBinding) -> bool:
    """Static hint that resolving ``binding`` will suspend."""
    if binding.loader is not None and module_definition_is_async(binding.loader.module):
        return True
    if binding.setter is not None and binding.setter.target.declares_async:
        return True
    if binding.action is not None and binding.action.target.declares_async:
        return True
    return False


async def _gather_mixed(items: list[Any]) -> list[Any]:
    """Await the awaitables in ``items`` concurrently, keeping order."""
    indexes = [i for i, item in enumerate(items) if inspect.isawaitable(item)]
    settled = await asyncio.gather(*(items[i] for i in indexes))
    values = list(items)
    for i, value in zip(indexes, settled):
        values[i] = value
    return values


async def _gather_all(pending: list[Awaitable[None]]) -> None:
    await asyncio.gather(*pending)
