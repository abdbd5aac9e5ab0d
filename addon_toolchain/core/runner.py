"""
Runner - Sequencing and fan-out primitives

Every unit of work is a Step: a display name plus a function taking the
PipelineContext. Steps compose with:
- sequence(): children run strictly in order, the first failure stops the chain
- concurrent(): all children start before any is awaited; the group fails
  after the slowest child finishes if any child failed

Running siblings in a concurrent group are never cancelled, so a failure
can leave partial output from the siblings that succeeded.
"""
import asyncio
import inspect
import logging
import time
from typing import Any, Awaitable, Callable, Optional, Union

from addon_toolchain.errors import ConcurrentStepError

logger = logging.getLogger(__name__)

StepFunction = Callable[[Any], Union[Awaitable[Any], Any]]


class Step:
    """
    A named unit of work

    fn may be a coroutine function or a plain function; plain functions
    run on a worker thread so they do not block sibling steps.
    """

    def __init__(self, name: str, fn: StepFunction):
        self.name = name
        self.fn = fn

    async def __call__(self, ctx: Any = None) -> Any:
        record = ctx.mark_started(self.name) if hasattr(ctx, "mark_started") else None
        started = time.monotonic()
        logger.debug(f"[Runner] Starting '{self.name}'")
        try:
            if inspect.iscoroutinefunction(self.fn) or inspect.iscoroutinefunction(getattr(self.fn, "__call__", None)):
                result = await self.fn(ctx)
            else:
                result = await asyncio.to_thread(self.fn, ctx)
                if inspect.isawaitable(result):
                    result = await result
        except BaseException as e:
            if record is not None:
                ctx.mark_failed(record, str(e))
            logger.debug(f"[Runner] '{self.name}' errored after {time.monotonic() - started:.2f}s: {e}")
            raise
        if record is not None:
            ctx.mark_completed(record)
        logger.debug(f"[Runner] Finished '{self.name}' after {time.monotonic() - started:.2f}s")
        return result

    def __repr__(self):
        return f"<Step {self.name}>"


def as_step(item: Union[Step, StepFunction]) -> Step:
    """Wrap a bare callable in a Step named after it"""
    if isinstance(item, Step):
        return item
    if not callable(item):
        raise TypeError(f"Cannot use {item!r} as a step")
    return Step(getattr(item, "__name__", repr(item)), item)


def step(name: Optional[str] = None):
    """Decorator turning a function into a Step"""
    def decorator(fn: StepFunction) -> Step:
        return Step(name or fn.__name__, fn)
    return decorator


def sequence(*items: Union[Step, StepFunction], name: Optional[str] = None) -> Step:
    """Run children in order, stopping at the first failure"""
    children = [as_step(item) for item in items]
    group_name = name or "<sequence>(" + ", ".join(c.name for c in children) + ")"

    async def run_sequence(ctx):
        results = []
        for child in children:
            results.append(await child(ctx))
        return results

    composed = Step(group_name, run_sequence)
    composed.children = children
    return composed


def concurrent(*items: Union[Step, StepFunction], name: Optional[str] = None) -> Step:
    """Start all children, wait for all, then fail if any failed"""
    children = [as_step(item) for item in items]
    group_name = name or "<concurrent>(" + ", ".join(c.name for c in children) + ")"

    async def run_concurrent(ctx):
        outcomes = await asyncio.gather(*(child(ctx) for child in children), return_exceptions=True)
        failures = [
            (child.name, outcome)
            for child, outcome in zip(children, outcomes)
            if isinstance(outcome, BaseException)
        ]
        if failures:
            for child_name, error in failures:
                logger.error(f"[Runner] '{child_name}' failed: {error}")
            raise ConcurrentStepError(group_name, failures)
        return outcomes

    composed = Step(group_name, run_concurrent)
    composed.children = children
    return composed


__all__ = ["Step", "StepFunction", "as_step", "step", "sequence", "concurrent"]
