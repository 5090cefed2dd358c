import asyncio
from collections import deque
from typing import Awaitable, Callable, Generic, Iterable, Tuple, TypeVar

from structlog import get_logger

logger = get_logger()

T = TypeVar("T")
Token = TypeVar("Token")

# One fetched page: its items in server order, and the token of the next page
# (None when this was the last one).
Page = Tuple[Iterable[T], Token | None]
FetchPage = Callable[[Token | None], Awaitable[Page | None]]


class ListingCursor(Generic[T, Token]):
    """
    Pull-based cursor over a paginated listing.

    Pages are fetched one at a time and only when the consumer asks for an
    item the buffer does not hold. The first request is sent with a `None`
    token; a page without a next token, or a `None` page (listing not found),
    ends the sequence. Once closed, the cursor never fetches again.

    Usable as `await cursor.next()`, `async for item in cursor` or
    `async with cursor`.
    """

    def __init__(self, fetch_page: FetchPage):
        self._fetch_page = fetch_page
        self._buffer: deque = deque()
        self._token = None
        self._exhausted = False
        self._closed = False
        self._lock = asyncio.Lock()
        self.requests_issued = 0

    @property
    def closed(self) -> bool:
        return self._closed

    async def next(self) -> T | None:
        async with self._lock:
            while not self._buffer:
                if self._closed or self._exhausted:
                    return None
                await self._fetch()
            return self._buffer.popleft()

    async def _fetch(self):
        self.requests_issued += 1
        page = await self._fetch_page(self._token)
        if self._closed:
            return
        if page is None:
            self._exhausted = True
            return

        items, next_token = page
        self._buffer.extend(items)
        self._token = next_token
        if next_token is None:
            self._exhausted = True

        logger.debug(
            "listing page fetched",
            page=self.requests_issued,
            buffered=len(self._buffer),
            last_page=self._exhausted,
        )

    async def close(self):
        self._closed = True
        self._buffer.clear()

    def __aiter__(self):
        return self

    async def __anext__(self) -> T:
        item = await self.next()
        if item is None:
            raise StopAsyncIteration
        return item

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.close()
