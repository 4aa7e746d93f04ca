"""
Request context: immutable carrier of values, cancellation and deadline.

Every outgoing request holds a Context. Middlewares never mutate it;
they derive a child with `with_value` and attach it to the request.

Example:
    >>> ctx, cancel = background().with_cancel()
    >>> ctx = ctx.with_timeout(5.0)
    >>> key = ContextKey("tenant")
    >>> ctx = key.with_value(ctx, "acme")
    >>> key.get_value(ctx)
    ('acme', True)
"""

import threading
import time
from typing import Any, Callable, Generic, Optional, Tuple, TypeVar

from .exceptions import CancelledError, TimeoutError

T = TypeVar("T")

_MISSING = object()


class Context:
    """
    Immutable request context.

    Attributes:
        deadline: Absolute deadline (time.monotonic() based) or None

    A child inherits the parent's values, cancellation events and the
    earliest of the deadlines.
    """

    __slots__ = ("_parent", "_key", "_value", "_events", "_deadline")

    def __init__(
        self,
        parent: Optional["Context"] = None,
        key: Any = _MISSING,
        value: Any = None,
        events: Tuple[threading.Event, ...] = (),
        deadline: Optional[float] = None
    ):
        self._parent = parent
        self._key = key
        self._value = value
        self._events = events
        self._deadline = deadline

    def _derive(self, **changes: Any) -> "Context":
        fields = {
            "parent": self,
            "events": self._events,
            "deadline": self._deadline,
        }
        fields.update(changes)
        return Context(**fields)

    def with_value(self, key: Any, value: Any) -> "Context":
        """Return a child context carrying `value` under `key`."""
        return self._derive(key=key, value=value)

    def value(self, key: Any, default: Any = None) -> Any:
        """Look up `key` walking from this context to the root."""
        ctx: Optional[Context] = self
        while ctx is not None:
            if ctx._key is key:
                return ctx._value
            ctx = ctx._parent
        return default

    def with_cancel(self) -> Tuple["Context", Callable[[], None]]:
        """
        Return a cancellable child and its cancel function.

        Cancelling the child never affects the parent.
        """
        event = threading.Event()
        child = self._derive(events=self._events + (event,))
        return child, event.set

    def with_deadline(self, deadline: float) -> "Context":
        """Return a child whose deadline is min(current, deadline)."""
        if self._deadline is not None and self._deadline <= deadline:
            return self._derive()
        return self._derive(deadline=deadline)

    def with_timeout(self, seconds: float) -> "Context":
        """Return a child that expires `seconds` from now."""
        return self.with_deadline(time.monotonic() + seconds)

    @property
    def deadline(self) -> Optional[float]:
        return self._deadline

    @property
    def cancellable(self) -> bool:
        """True when some context in the chain came from with_cancel()."""
        return bool(self._events)

    @property
    def cancelled(self) -> bool:
        return any(event.is_set() for event in self._events)

    def remaining(self) -> Optional[float]:
        """Seconds left until the deadline (may be negative), None if no deadline."""
        if self._deadline is None:
            return None
        return self._deadline - time.monotonic()

    def err(self) -> Optional[Exception]:
        """
        Reason this context is done, or None while it is still live.

        Returns:
            CancelledError if cancelled, TimeoutError if the deadline passed
        """
        if self.cancelled:
            return CancelledError("context canceled")
        remaining = self.remaining()
        if remaining is not None and remaining <= 0:
            return TimeoutError("context deadline exceeded", timeout_type="deadline")
        return None


_BACKGROUND = Context()


def background() -> Context:
    """Root context: no values, never cancelled, no deadline."""
    return _BACKGROUND


class ContextKey(Generic[T]):
    """
    Typed key for values stored in a Context.

    Keys compare by identity; two keys with the same name are distinct.

    Example:
        >>> skip_key: ContextKey[bool] = ContextKey("dump_skip")
        >>> ctx = skip_key.with_value(background(), True)
        >>> skip_key.get_value(ctx)
        (True, True)
    """

    __slots__ = ("name",)

    def __init__(self, name: str):
        self.name = name

    def with_value(self, ctx: Optional[Context], value: T) -> Context:
        if ctx is None:
            ctx = background()
        return ctx.with_value(self, value)

    def get_value(self, ctx: Optional[Context]) -> Tuple[Optional[T], bool]:
        """Return (value, True) when present, (None, False) otherwise."""
        if ctx is None:
            return None, False
        value = ctx.value(self, _MISSING)
        if value is _MISSING:
            return None, False
        return value, True

    def __repr__(self) -> str:
        return f"ContextKey({self.name!r})"
