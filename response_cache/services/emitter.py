"""Response-emit wrapper that persists a body before forwarding it."""

from typing import Awaitable, Callable, TypeVar

T = TypeVar("T")

Persist = Callable[[bytes], Awaitable[None]]
Forward = Callable[[bytes], Awaitable[T]]


def persist_then_forward(persist: Persist, forward: Forward) -> Forward:
    """
    Wrap ``forward`` so its first invocation stores the body first.

    The same bytes reach ``persist`` and ``forward``. Later invocations
    only forward. ``persist`` is expected to handle its own failures;
    anything it raises propagates before the body is forwarded.
    """
    persisted = False

    async def emit(body: bytes) -> T:
        nonlocal persisted
        if not persisted:
            persisted = True
            await persist(body)
        return await forward(body)

    return emit
