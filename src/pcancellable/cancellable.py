"""Cancellable futures on top of asyncio.

A ``Cancellable`` wraps an ``asyncio.Future`` and adds a cancellation
control-plane: nodes derived through ``then``/``catch`` keep a link to the
node they came from, aggregates built by ``all``/``race`` keep the
cancellable inputs as children, and ``cancel()`` walks both directions.

Resolution, rejection and awaitable adoption are left to asyncio.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable, Generator, Iterable
from typing import Any, Generic, TypeVar

from pcancellable.config import get_config
from pcancellable.errors import CancellationError, ExecutorError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Resolve = Callable[[Any], None]
Reject = Callable[[BaseException], None]
CancelHandler = Callable[[Callable[[], Any]], Any]
OnCancel = Callable[[CancelHandler], None]
Executor = Callable[[Resolve, Reject, OnCancel], Any]

CANCELLABLE_MARKER = "__cancellable__"


def _noop() -> None:
    return None


def _copy_outcome(source: asyncio.Future[Any], target: asyncio.Future[Any]) -> None:
    """Mirror a settled ``source`` onto ``target`` unless it already settled."""
    if target.done():
        return
    if source.cancelled():
        target.cancel()
        return
    exc = source.exception()
    if exc is not None:
        target.set_exception(exc)
    else:
        target.set_result(source.result())


def _outcome(future: asyncio.Future[Any]) -> tuple[BaseException | None, Any]:
    if future.cancelled():
        return asyncio.CancelledError(), None
    exc = future.exception()
    if exc is not None:
        return exc, None
    return None, future.result()


class Cancellable(Generic[T]):
    """A future that can be canceled after creation.

    The executor runs synchronously and receives ``resolve``, ``reject`` and
    ``on_cancel``. ``on_cancel(handler)`` registers the handler called with
    the ``cancel()`` callback when the node is canceled; registering again
    replaces the previous handler.

    Example::

        def executor(resolve, reject, on_cancel):
            handle = loop.call_later(5, resolve, "done")
            on_cancel(lambda callback: handle.cancel())

        job = Cancellable(executor).throw_on_cancel()
        job.cancel()  # awaiting job now raises CancellationError
    """

    __cancellable__ = True

    CancelError = CancellationError

    def __init__(
        self,
        executor: Executor,
        *,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        if not callable(executor):
            raise ExecutorError(executor)

        self._loop = loop or asyncio.get_running_loop()
        self._future: asyncio.Future[T] = self._loop.create_future()
        self._canceled = False
        self._children: list[Cancellable[Any]] | None = None
        self._parent: Cancellable[Any] | None = None
        self._cancel_handler: CancelHandler | None = None
        self._resolved_value: Any = None
        self._locked = False
        self._throw_on_cancel = get_config().throw_on_cancel

        try:
            executor(self._resolve, self._reject, self._on_cancel)
        except Exception as exc:
            self._reject(exc)

        logger.debug("Created cancellable %x", id(self))

    # -- executor callbacks -------------------------------------------------

    def _resolve(self, value: Any = None) -> None:
        if self._locked:
            return
        self._locked = True
        self._resolved_value = value
        self._loop.call_soon(self._adopt, value)

    def _reject(self, reason: BaseException) -> None:
        if not isinstance(reason, BaseException):
            raise TypeError(f"Rejection reason must be an exception, got {reason!r}")
        if self._locked:
            return
        self._locked = True
        self._loop.call_soon(self._settle_exception, reason)

    def _on_cancel(self, handler: CancelHandler) -> None:
        self._cancel_handler = handler

    def _settle_exception(self, reason: BaseException) -> None:
        if self._future.done():
            return
        if isinstance(reason, asyncio.CancelledError):
            self._future.cancel()
        else:
            self._future.set_exception(reason)

    def _adopt(self, value: Any) -> None:
        if self._future.done():
            # Force-rejected before the value could be adopted
            if inspect.iscoroutine(value):
                value.close()
            return
        if Cancellable.is_cancellable(value):
            value = value.future
        elif inspect.isawaitable(value) and not asyncio.isfuture(value):
            value = asyncio.ensure_future(value, loop=self._loop)
        if asyncio.isfuture(value):
            value.add_done_callback(lambda source: _copy_outcome(source, self._future))
        else:
            self._future.set_result(value)

    # -- introspection --------------------------------------------------------

    @property
    def future(self) -> asyncio.Future[T]:
        """The wrapped asyncio future."""
        return self._future

    @property
    def parent(self) -> Cancellable[Any] | None:
        """Node this one was derived from via ``then``/``catch``."""
        return self._parent

    @property
    def children(self) -> tuple[Cancellable[Any], ...]:
        """Cancellable inputs of an ``all``/``race`` aggregate."""
        return tuple(self._children or ())

    @property
    def resolved_value(self) -> Any:
        """Value handed to ``resolve``, if any."""
        return self._resolved_value

    def is_canceled(self) -> bool:
        return self._canceled

    def __await__(self) -> Generator[Any, None, T]:
        return self._future.__await__()

    def __repr__(self) -> str:
        if self._canceled:
            state = "canceled"
        elif self._future.done():
            state = "settled"
        else:
            state = "pending"
        return f"<Cancellable {state} root={self._parent is None} children={len(self.children)}>"

    # -- derivation -----------------------------------------------------------

    def then(
        self,
        on_fulfilled: Callable[[Any], Any] | None = None,
        on_rejected: Callable[[BaseException], Any] | None = None,
    ) -> Cancellable[Any]:
        """Chain handlers like ``Promise.then`` and return a derived node.

        Handlers may return plain values, awaitables or other cancellables;
        a returned cancellable is canceled along with the derived node.
        """

        def executor(resolve: Resolve, reject: Reject, on_cancel: OnCancel) -> None:
            def settle(source: asyncio.Future[Any]) -> None:
                exc, value = _outcome(source)
                handler = on_rejected if exc is not None else on_fulfilled
                if handler is None:
                    if exc is not None:
                        reject(exc)
                    else:
                        resolve(value)
                    return
                try:
                    result = handler(exc if exc is not None else value)
                except (KeyboardInterrupt, SystemExit) as error:
                    reject(error)
                    raise
                except BaseException as error:
                    reject(error)
                    return
                resolve(result)

            self._future.add_done_callback(settle)

        derived: Cancellable[Any] = Cancellable(executor, loop=self._loop)
        derived._parent = self
        logger.debug("Cancellable %x derived from %x", id(derived), id(self))
        return derived

    def catch(self, on_rejected: Callable[[BaseException], Any] | None = None) -> Cancellable[Any]:
        """Chain a rejection handler like ``Promise.catch``."""
        return self.then(None, on_rejected)

    # -- cancellation ---------------------------------------------------------

    def throw_on_cancel(self) -> Cancellable[T]:
        """Reject with ``CancellationError`` when canceled as a root."""
        self._throw_on_cancel = True
        return self

    def cancel(self, callback: Callable[[], Any] = _noop) -> None:
        """Cancel this node, its aggregated children and its whole ancestry.

        ``callback`` is passed to every cancel handler met along the way.
        Exceptions raised by a cancel handler propagate to the caller.
        """
        current: Cancellable[Any] | None = self
        depth = 0

        while current is not None and not current._canceled:
            if current._children:
                for child in current._children:
                    if Cancellable.is_cancellable(child):
                        child.cancel(callback)
                current._children = None

            if Cancellable.is_cancellable(current._resolved_value):
                current._resolved_value.cancel(callback)

            # A handler reached above may have canceled this node and its ancestors
            if current._canceled:
                break

            current._canceled = True

            if current._cancel_handler is not None:
                try:
                    current._cancel_handler(callback)
                except Exception:
                    logger.warning("Cancel handler of %r raised", current, exc_info=True)
                    raise

            rejected = current._parent is None and current._throw_on_cancel
            if rejected:
                current._settle_exception(CancellationError())

            logger.debug(
                "Canceled %x (depth=%d, root=%s, rejected=%s)",
                id(current), depth, current._parent is None, rejected,
            )
            current = current._parent
            depth += 1

    # -- static adoption / aggregation ----------------------------------------

    @staticmethod
    def is_cancellable(value: Any) -> bool:
        """True if ``value`` carries the cancellable marker."""
        if value is None:
            return False
        return getattr(type(value), CANCELLABLE_MARKER, False) is True

    @classmethod
    def resolve(cls, value: Any = None) -> Cancellable[Any]:
        """Wrap ``value`` in a new node; cancellables are returned unchanged."""
        if cls.is_cancellable(value):
            return value
        return cls(lambda resolve, reject, on_cancel: resolve(value))

    @classmethod
    def reject(cls, reason: BaseException) -> Cancellable[Any]:
        """Return a node rejected with ``reason``."""
        if not isinstance(reason, BaseException):
            raise TypeError(f"Rejection reason must be an exception, got {reason!r}")
        return cls(lambda resolve, reject, on_cancel: reject(reason))

    @classmethod
    def all(cls, iterable: Iterable[Any]) -> Cancellable[list[Any]]:
        """Fulfill with every result in order, or reject with the first failure.

        Cancellable inputs become children of the returned aggregate.
        """
        items = list(iterable)
        loop = asyncio.get_running_loop()
        aggregate = cls.resolve(
            asyncio.gather(*(_as_future(item, loop) for item in items))
        )
        _collect_children(aggregate, items)
        return aggregate

    @classmethod
    def race(cls, iterable: Iterable[Any]) -> Cancellable[Any]:
        """Settle like the first input to settle.

        Cancellable inputs become children of the returned aggregate.
        """
        items = list(iterable)
        loop = asyncio.get_running_loop()
        winner: asyncio.Future[Any] = loop.create_future()
        for item in items:
            _as_future(item, loop).add_done_callback(
                lambda source: _copy_outcome(source, winner)
            )
        aggregate = cls.resolve(winner)
        _collect_children(aggregate, items)
        return aggregate


def _as_future(value: Any, loop: asyncio.AbstractEventLoop) -> asyncio.Future[Any]:
    """Turn any input of an aggregate into a future on ``loop``."""
    if Cancellable.is_cancellable(value):
        return value.future
    if inspect.isawaitable(value):
        return asyncio.ensure_future(value, loop=loop)
    future: asyncio.Future[Any] = loop.create_future()
    future.set_result(value)
    return future


def _collect_children(aggregate: Cancellable[Any], items: list[Any]) -> None:
    children = [item for item in items if Cancellable.is_cancellable(item)]
    if children:
        aggregate._children = children
    logger.debug("Aggregate %x created with %d cancellable children", id(aggregate), len(children))


def resolve_later(value: Any, delay: float) -> Cancellable[Any]:
    """Resolve with ``value`` after ``delay`` seconds; canceling stops the timer."""

    def executor(resolve: Resolve, reject: Reject, on_cancel: OnCancel) -> None:
        handle = asyncio.get_running_loop().call_later(delay, resolve, value)
        on_cancel(lambda callback: handle.cancel())

    return Cancellable(executor)


__all__ = ["CANCELLABLE_MARKER", "Cancellable", "resolve_later"]
