"""
Cancellation scopes for the API calls.

A scope is a flag that the caller can raise at any time to abort all the API
activities performed under this scope: the HTTP exchanges in flight, the sleeps
between the retries on locked objects, the polling of the server-side tasks.
Optionally, it also carries a deadline, after which it is cancelled implicitly.

The scope is owned by the caller. The client only observes it and never sets it
except for marking the deadline as passed. The same scope can be shared
by many concurrent calls; all of them are aborted when it is cancelled.

Unlike the native cancellation of asyncio tasks (which is also supported),
a scope carries a reason, which is re-raised verbatim in all aborted calls::

    scope = bcc.Scope(timeout=60)
    manager = manager.with_scope(scope)
    asyncio.get_running_loop().call_later(5, scope.cancel, MyShutdownError())
    await manager.request('POST', f'v1/vm/{vm_id}/reboot')  # raises MyShutdownError
"""
import asyncio
import weakref
from typing import Awaitable, Optional, TypeVar

_T = TypeVar('_T')


class ScopeError(Exception):
    """ A base for the implicit reasons of the scope cancellation. """


class ScopeCancelledError(ScopeError):
    """ The scope was cancelled without an explicit reason. """


class ScopeDeadlineError(ScopeError):
    """ The scope's deadline has passed. """


class Scope:
    """
    A flag indicating that the API activities should be aborted ASAP.

    The deadline is measured in the event loop's time, so the scopes with
    timeouts can only be created inside of a running event loop.

    A nested scope (with a parent) is cancelled together with its parent,
    with the parent's reason, and never outlives the parent's deadline.
    The parent is not affected by its nested scopes in any way.
    """

    def __init__(
            self,
            *,
            timeout: Optional[float] = None,
            parent: Optional["Scope"] = None,
    ) -> None:
        super().__init__()
        self.when: Optional[float] = None
        self.reason: Optional[BaseException] = None
        self.deadline: Optional[float] = None
        self.async_event = asyncio.Event()
        self._children: "weakref.WeakSet[Scope]" = weakref.WeakSet()
        if timeout is not None:
            self.deadline = asyncio.get_running_loop().time() + timeout
        if parent is not None:
            parent._children.add(self)
            if parent.deadline is not None:
                self.deadline = parent.deadline if self.deadline is None else min(self.deadline, parent.deadline)
            if parent.is_cancelled():
                self.cancel(parent.reason)

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__}: {self.is_cancelled()}, reason={self.reason!r}>'

    def is_cancelled(self) -> bool:
        return self.async_event.is_set()

    def cancel(self, reason: Optional[BaseException] = None) -> None:
        """
        Cancel the scope and wake up all the calls sleeping in it.

        Only the first reason is remembered; the repeated cancellations are no-op.
        """
        if self.reason is None:
            self.reason = reason if reason is not None else ScopeCancelledError("The scope is cancelled.")
            self.when = asyncio.get_running_loop().time()
        self.async_event.set()
        for child in list(self._children):
            child.cancel(self.reason)

    def remaining(self) -> Optional[float]:
        """ Seconds left till the deadline, or ``None`` if there is no deadline. """
        if self.deadline is None:
            return None
        return self.deadline - asyncio.get_running_loop().time()

    def check(self) -> None:
        """ Raise the cancellation reason if the scope is cancelled or expired. """
        remaining = self.remaining()
        if remaining is not None and remaining <= 0 and not self.is_cancelled():
            self.cancel(ScopeDeadlineError("The scope's deadline has passed."))
        if self.is_cancelled() and self.reason is not None:
            raise self.reason

    async def wait(self) -> None:
        await self.async_event.wait()

    async def run(self, awaitable: Awaitable[_T]) -> _T:
        """
        Await for an awaitable (e.g. an HTTP request), but abort it if cancelled.

        If the awaitable finishes at the same moment as the scope is cancelled,
        the awaitable's result wins: it is already there, so why to lose it.
        """
        self.check()
        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self.wait())
        try:
            await asyncio.wait([task, waiter],
                               timeout=self.remaining(),
                               return_when=asyncio.FIRST_COMPLETED)
        finally:
            for future in [task, waiter]:
                if not future.done():
                    future.cancel()
            await asyncio.wait([task, waiter])

        if not task.cancelled():
            return task.result()

        self.check()
        raise RuntimeError("The scoped call is aborted with no reason.")
