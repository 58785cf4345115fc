# pwfluent/utils/timing.py
from __future__ import annotations

import asyncio
import functools
import inspect
import time
from dataclasses import dataclass, replace
from typing import Any, Awaitable, Callable, Optional, TypeVar, Union

from pwfluent.utils.config import get_settings
from pwfluent.utils.logger import get_logger

T = TypeVar("T")

Predicate = Callable[[], Union[bool, Awaitable[bool]]]
ValueProducer = Callable[[], Union[T, Awaitable[T]]]
CancelCheck = Callable[[], bool]


__all__ = [
    "now_ms",
    "async_sleep_ms",
    "Stopwatch",
    "WaitUntilOptions",
    "StabilityTimeoutError",
    "PageClosedError",
    "wait_until",
    "wait_for_stability_of",
    "measure",
]


class StabilityTimeoutError(TimeoutError):
    """A wait never became stable within its overall timeout."""

    def __init__(self, message: str, *, elapsed_ms: int, last_observation: Any) -> None:
        super().__init__(f"{message} (elapsed: {elapsed_ms} ms, last observation: {last_observation!r})")
        self.elapsed_ms = elapsed_ms
        self.last_observation = last_observation


class PageClosedError(RuntimeError):
    """The page or browser went away while a wait was in progress."""


# ---------------- Monotonic time helpers ----------------

def now_ms() -> int:
    """Monotonic time in milliseconds."""
    return time.monotonic_ns() // 1_000_000


async def async_sleep_ms(ms: int) -> None:
    """Async sleep for `ms` milliseconds."""
    if ms <= 0:
        return
    await asyncio.sleep(ms / 1000.0)


# ---------------- Stopwatch ----------------

@dataclass
class Stopwatch:
    """Simple stopwatch usable as a context manager."""
    start_ms: Optional[int] = None

    def start(self) -> "Stopwatch":
        self.start_ms = now_ms()
        return self

    def elapsed_ms(self) -> int:
        if self.start_ms is None:
            return 0
        return max(0, now_ms() - self.start_ms)

    def __enter__(self) -> "Stopwatch":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        return None


# ---------------- Wait options ----------------

@dataclass(frozen=True)
class WaitUntilOptions:
    stability_in_milliseconds: int = 300
    timeout_in_milliseconds: int = 30000
    polling_interval_in_milliseconds: int = 50
    throw_on_timeout: bool = True
    verbose: bool = False

    @classmethod
    def from_settings(cls, **overrides: Any) -> "WaitUntilOptions":
        s = get_settings()
        base = cls(
            stability_in_milliseconds=s.STABILITY_WINDOW,
            timeout_in_milliseconds=s.WAIT_TIMEOUT,
            polling_interval_in_milliseconds=s.POLLING_INTERVAL,
        )
        return replace(base, **overrides) if overrides else base


async def _evaluate(fn: Callable[[], Any]) -> Any:
    result = fn()
    if inspect.isawaitable(result):
        result = await result
    return result


async def _observe(fn: Callable[[], Any], is_cancelled: Optional[CancelCheck], description: str) -> Any:
    """Evaluate `fn` once, converting failures caused by teardown into PageClosedError."""
    if is_cancelled is not None and is_cancelled():
        raise PageClosedError(f"Page or browser closed while waiting for {description}")
    try:
        return await _evaluate(fn)
    except Exception as exc:
        if is_cancelled is not None and is_cancelled():
            raise PageClosedError(f"Page or browser closed while waiting for {description}") from exc
        raise


# ---------------- wait_until (StabilityPoller) ----------------

async def wait_until(
    predicate: Predicate,
    options: Optional[WaitUntilOptions] = None,
    *,
    error_message: Optional[str] = None,
    is_cancelled: Optional[CancelCheck] = None,
) -> None:
    """
    Poll `predicate()` (sync or async) until it returns True and keeps returning
    True for the whole stability window.

    Raises:
        StabilityTimeoutError when the overall timeout elapses first
        (unless options.throw_on_timeout is False).
        PageClosedError as soon as `is_cancelled()` reports a teardown.
    """
    opts = options or WaitUntilOptions.from_settings()
    log = get_logger(__name__)
    description = error_message or "predicate to become stable"
    sw = Stopwatch().start()
    true_since: Optional[int] = None
    last: Any = None

    while True:
        last = bool(await _observe(predicate, is_cancelled, description))
        if opts.verbose:
            log.debug(f"wait_until: predicate={last} after {sw.elapsed_ms()} ms")

        if last:
            if true_since is None:
                true_since = now_ms()
            if now_ms() - true_since >= opts.stability_in_milliseconds:
                return
        else:
            true_since = None

        if sw.elapsed_ms() >= opts.timeout_in_milliseconds:
            msg = error_message or f"Predicate never held for {opts.stability_in_milliseconds} ms"
            if opts.throw_on_timeout:
                raise StabilityTimeoutError(msg, elapsed_ms=sw.elapsed_ms(), last_observation=last)
            log.warning(f"{msg} (elapsed: {sw.elapsed_ms()} ms, last observation: {last!r})")
            return

        await async_sleep_ms(opts.polling_interval_in_milliseconds)


async def wait_for_stability_of(
    producer: ValueProducer,
    options: Optional[WaitUntilOptions] = None,
    *,
    error_message: Optional[str] = None,
    is_cancelled: Optional[CancelCheck] = None,
) -> Any:
    """
    Poll `producer()` until the value it returns stays equal for the whole
    stability window, then return that value.
    """
    opts = options or WaitUntilOptions.from_settings()
    log = get_logger(__name__)
    description = error_message or "value to become stable"
    sw = Stopwatch().start()
    stable_since: Optional[int] = None
    last: Any = None
    observed_once = False

    while True:
        value = await _observe(producer, is_cancelled, description)
        if opts.verbose:
            log.debug(f"wait_for_stability_of: value={value!r} after {sw.elapsed_ms()} ms")

        if observed_once and value == last:
            if now_ms() - stable_since >= opts.stability_in_milliseconds:  # type: ignore[operator]
                return value
        else:
            stable_since = now_ms()
            if opts.stability_in_milliseconds == 0:
                return value
        last = value
        observed_once = True

        if sw.elapsed_ms() >= opts.timeout_in_milliseconds:
            msg = error_message or f"Value never stayed unchanged for {opts.stability_in_milliseconds} ms"
            if opts.throw_on_timeout:
                raise StabilityTimeoutError(msg, elapsed_ms=sw.elapsed_ms(), last_observation=last)
            log.warning(f"{msg} (elapsed: {sw.elapsed_ms()} ms, last observation: {last!r})")
            return last

        await async_sleep_ms(opts.polling_interval_in_milliseconds)


# ---------------- measure decorator ----------------

def measure(label: str = "", level: str = "DEBUG") -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorator to log the execution time of a function or coroutine function.
    Example:
        @measure("navigate")
        async def navigate_to(...): ...
    """
    log = get_logger(__name__)
    log_fn = getattr(log, level.lower(), log.debug)

    def _report(name: str, ms: int) -> None:
        human = f"{ms} ms" if ms < 1000 else f"{ms/1000:.3f} s"
        log_fn(f"{name} took {human}")

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        name = label or func.__name__

        if inspect.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                with Stopwatch() as sw:
                    try:
                        return await func(*args, **kwargs)
                    finally:
                        _report(name, sw.elapsed_ms())
            return async_wrapper  # type: ignore[return-value]

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            with Stopwatch() as sw:
                try:
                    return func(*args, **kwargs)
                finally:
                    _report(name, sw.elapsed_ms())
        return wrapper
    return decorator
