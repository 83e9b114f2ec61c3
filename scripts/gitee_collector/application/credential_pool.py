from __future__ import annotations
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Generic, Iterable, TypeVar

from gitee_collector.domain.errors import NoCredentialsError

log = logging.getLogger(__name__)

H = TypeVar("H")


class CredentialPool(Generic[H]):
    """
    Fixed arena of interchangeable client handles.

    acquire() suspends the calling coroutine until a handle is free, so the
    number of handles in use at once never exceeds `size`; that is the only
    concurrency bound the orchestrator needs. An empty pool never blocks:
    acquire() raises NoCredentialsError straight away.

    The asyncio.Queue holds the idle handles; `_lent` tracks the ones out on
    loan so a handle cannot be returned twice.
    """

    def __init__(self, handles: Iterable[H]) -> None:
        self._handles: list[H] = list(handles)
        self._idle: asyncio.Queue[H] = asyncio.Queue()
        for handle in self._handles:
            self._idle.put_nowait(handle)
        self._lent: list[H] = []

    @classmethod
    def from_tokens(cls,tokens: Iterable[str],factory: Callable[[str | None], H],allow_anonymous: bool = False) -> CredentialPool[H]:
        """
        One handle per token. With no tokens, either a single unauthenticated
        handle (allow_anonymous) or an empty pool.
        """
        tokens = list(tokens)
        if tokens:
            return cls(factory(token) for token in tokens)
        if allow_anonymous:
            log.warning("gitee tokens not provided: using one unauthenticated client")
            return cls([factory(None)])
        log.warning("gitee tokens not provided: no information will be collected from gitee")
        return cls([])

    @property
    def size(self) -> int:
        return len(self._handles)

    @property
    def available(self) -> int:
        return self._idle.qsize()

    @property
    def concurrency(self) -> int:
        """How many live fetches may run at once (1 for an empty pool)."""
        return max(self.size, 1)

    async def acquire(self) -> H:
        if not self._handles:
            raise NoCredentialsError("no tokens provided")
        handle = await self._idle.get()
        self._lent.append(handle)
        return handle

    def release(self, handle: H) -> None:
        for i, lent in enumerate(self._lent):
            if lent is handle:
                del self._lent[i]
                self._idle.put_nowait(handle)
                return
        raise ValueError("handle is not on loan from this pool")

    @asynccontextmanager
    async def lease(self) -> AsyncIterator[H]:
        """Acquire a handle and release it on every exit path."""
        handle = await self.acquire()
        try:
            yield handle
        finally:
            self.release(handle)
