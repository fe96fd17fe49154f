"""Process-wide cache of compiled execution plans, keyed by result type.

A plan holds everything about a query's shape that can be prepared ahead of
time, most notably the row mapper for the result type (for pydantic models
this compiles a validator). Argument values are supplied at invocation time,
so one plan serves every call that returns the same row type.

Components:
- CompiledPlan: Precompiled execution shape for one result type
- CompiledQueryCache: Construct-once, read-many map of plans
- CacheStats: Hit/miss/compilation counters
"""

import threading
from collections.abc import Callable
from contextlib import aclosing
from typing import TYPE_CHECKING, Any, Generic, Optional

from mypy_extensions import mypyc_attr
from typing_extensions import TypeVar

from sqlproc.core.execution import convert_row
from sqlproc.utils.logging import get_logger
from sqlproc.utils.schema import build_row_converter

if TYPE_CHECKING:
    import asyncio
    from collections.abc import AsyncIterator

    from sqlproc.core.parameters import ProcedureInvocation
    from sqlproc.driver import AsyncProcedureDriverBase
    from sqlproc.utils.schema import RowConverter

__all__ = (
    "CacheStats",
    "CompiledPlan",
    "CompiledQueryCache",
    "compile_plan",
    "get_compiled_query_cache",
    "reset_compiled_query_cache",
)

T = TypeVar("T", default="dict[str, Any]")

logger = get_logger("cache")


@mypyc_attr(allow_interpreted_subclasses=False)
class CacheStats:
    """Compiled plan cache statistics.

    Hits are counted without locking, so under contention they are approximate.
    Misses and compilations are exact.
    """

    __slots__ = ("compilations", "hits", "misses")

    def __init__(self) -> None:
        self.hits = 0
        self.misses = 0
        self.compilations = 0

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate as percentage."""
        total = self.hits + self.misses
        return (self.hits / total * 100) if total > 0 else 0.0

    def reset(self) -> None:
        """Reset all statistics."""
        self.hits = 0
        self.misses = 0
        self.compilations = 0

    def __repr__(self) -> str:
        return (
            f"CacheStats(hit_rate={self.hit_rate:.1f}%, hits={self.hits}, misses={self.misses}, "
            f"compilations={self.compilations})"
        )


class CompiledPlan(Generic[T]):
    """Precompiled execution shape for one result type.

    Immutable after construction and safe to share between concurrent calls.

    Args:
        result_type: The row type the plan produces.
        plan_handle: The row mapper built for ``result_type``.
    """

    __slots__ = ("plan_handle", "result_type")

    def __init__(self, result_type: "type[T]", plan_handle: "RowConverter") -> None:
        self.result_type = result_type
        self.plan_handle = plan_handle

    async def invoke(
        self,
        driver: "AsyncProcedureDriverBase",
        invocation: "ProcedureInvocation",
        *,
        cancel_event: "Optional[asyncio.Event]" = None,
    ) -> "AsyncIterator[T]":
        """Run the plan with this call's connection and arguments.

        Args:
            driver: Driver bound to the connection for this call.
            invocation: The built invocation carrying this call's arguments.
            cancel_event: Checked at every row boundary.

        Yields:
            Rows mapped onto ``result_type``. The sequence is lazy, forward
            only and cannot be restarted.
        """
        async with aclosing(driver.stream_raw(invocation, cancel_event=cancel_event)) as rows:
            async for row in rows:
                yield convert_row(self.plan_handle, row)

    def __repr__(self) -> str:
        return f"CompiledPlan(result_type={getattr(self.result_type, '__name__', self.result_type)})"


def compile_plan(result_type: "type[T]") -> "CompiledPlan[T]":
    """Build the plan for ``result_type``."""
    return CompiledPlan(result_type, build_row_converter(result_type))


@mypyc_attr(allow_interpreted_subclasses=False)
class CompiledQueryCache:
    """Append-only map of result type to compiled plan.

    The first request for a type compiles its plan while holding a lock, so
    concurrent first use still compiles exactly once. Every later lookup is a
    plain dict read. Entries are never evicted.

    Args:
        plan_factory: Builds the plan for a result type.
    """

    __slots__ = ("_lock", "_plan_factory", "_plans", "_stats")

    def __init__(self, plan_factory: "Callable[[type[Any]], CompiledPlan[Any]]" = compile_plan) -> None:
        self._plans: dict[type[Any], CompiledPlan[Any]] = {}
        self._lock = threading.Lock()
        self._plan_factory = plan_factory
        self._stats = CacheStats()

    def get_or_create(self, result_type: "Optional[type[T]]" = None) -> "CompiledPlan[T]":
        """Return the plan for ``result_type``, compiling it on first use.

        Args:
            result_type: Row type of the procedure, or None for ``dict`` rows.

        Returns:
            The shared plan for ``result_type``.
        """
        key: type[Any] = result_type if result_type is not None else dict
        plan = self._plans.get(key)
        if plan is not None:
            self._stats.hits += 1
            return plan

        with self._lock:
            plan = self._plans.get(key)
            if plan is None:
                self._stats.misses += 1
                plan = self._plan_factory(key)
                self._plans[key] = plan
                self._stats.compilations += 1
                logger.debug("Compiled execution plan for %s", getattr(key, "__name__", key))
            else:
                self._stats.hits += 1
        return plan

    def __contains__(self, result_type: object) -> bool:
        return result_type in self._plans

    def __len__(self) -> int:
        return len(self._plans)

    def clear(self) -> None:
        """Drop every plan and reset statistics."""
        with self._lock:
            self._plans.clear()
            self._stats.reset()

    def get_stats(self) -> CacheStats:
        """Get cache statistics."""
        return self._stats


_compiled_query_cache: Optional[CompiledQueryCache] = None
_cache_lock = threading.Lock()


def get_compiled_query_cache() -> CompiledQueryCache:
    """Get the process-wide compiled query cache.

    Returns:
        Singleton compiled query cache instance
    """
    global _compiled_query_cache
    if _compiled_query_cache is None:
        with _cache_lock:
            if _compiled_query_cache is None:
                _compiled_query_cache = CompiledQueryCache()
    return _compiled_query_cache


def reset_compiled_query_cache() -> None:
    """Clear the process-wide cache."""
    get_compiled_query_cache().clear()
