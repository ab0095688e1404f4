"""
Client-side request coordinator for the property listing page.

Owns the filter, the accumulated result list and a small state machine:

    IDLE --fetch--> FETCHING --response--> IDLE
                             --failure---> ERROR

Every fetch gets a request id from a monotonically increasing counter and
only the response carrying the latest id is applied; anything older is
discarded when it lands. Rules:

- text search is debounced; each keystroke restarts a single-slot timer.
- discrete filter actions (category tab, dropdowns, toggles) fetch at once,
  cancel any pending debounce and reset the list and offset.
- "load more" appends the next page; it is dropped while a fetch is in
  flight.
- price, carpet area, possession, bedrooms and sort are refined locally on
  the fetched items, with no request.
- failures set ERROR and are not retried.
"""

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, List, Optional

from catalog.client.api import PropertyPage
from catalog.models.filter import LOCAL_REFINEMENT_FIELDS, PropertyFilter
from catalog.models.property import Property
from catalog.services.refinement import apply_refinements, sort_properties

logger = logging.getLogger(__name__)

FetchPage = Callable[[PropertyFilter], Awaitable[PropertyPage]]

DEFAULT_PAGE_SIZE = 12
DEFAULT_DEBOUNCE_SECONDS = 0.3


class CoordinatorState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    ERROR = "error"


class RequestCoordinator:
    """Coordinates catalog queries for one listing view."""

    def __init__(
        self,
        fetch_page: FetchPage,
        page_size: int = DEFAULT_PAGE_SIZE,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        initial_filter: Optional[PropertyFilter] = None,
        on_change: Optional[Callable[["RequestCoordinator"], None]] = None,
    ):
        self._fetch_page = fetch_page
        self.page_size = page_size
        self.debounce_seconds = debounce_seconds
        self.filter = (initial_filter or PropertyFilter()).model_copy(
            update={"limit": page_size, "offset": 0}
        )
        self.on_change = on_change

        self.items: List[Property] = []
        self.total = 0
        self.has_more = True
        self.served_from: Optional[str] = None
        self.state = CoordinatorState.IDLE
        self.error: Optional[str] = None

        self._latest_request_id = 0
        self._in_flight: Optional[tuple[int, str]] = None  # (request id, query key)
        self._debounce_task: Optional[asyncio.Task] = None

    # --- State ---

    @property
    def is_fetching(self) -> bool:
        return self.state == CoordinatorState.FETCHING

    @property
    def latest_request_id(self) -> int:
        return self._latest_request_id

    @property
    def has_pending_search(self) -> bool:
        return self._debounce_task is not None and not self._debounce_task.done()

    @property
    def visible_items(self) -> List[Property]:
        """Fetched items with the local refinements and sort applied."""
        return sort_properties(apply_refinements(self.items, self.filter), self.filter.sort)

    def _notify(self):
        if self.on_change is not None:
            self.on_change(self)

    def _update_filter(self, **changes):
        self.filter = PropertyFilter.model_validate({**self.filter.model_dump(), **changes})

    # --- Debounced text search ---

    def set_search(self, text: str) -> None:
        """Record a keystroke and (re)start the debounce timer."""
        self._update_filter(search=text)
        self._cancel_debounce()
        self._debounce_task = asyncio.get_running_loop().create_task(self._debounced_fetch())

    async def submit_search(self) -> bool:
        """Search right away (e.g. on Enter), skipping the debounce."""
        self._cancel_debounce()
        return await self._start(reset=True)

    async def _debounced_fetch(self):
        await asyncio.sleep(self.debounce_seconds)
        self._debounce_task = None
        await self._start(reset=True)

    def _cancel_debounce(self):
        if self._debounce_task is not None and not self._debounce_task.done():
            self._debounce_task.cancel()
        self._debounce_task = None

    # --- Immediate filter actions ---

    async def set_category(self, category) -> bool:
        return await self._apply_immediate(category=category)

    async def set_transaction_type(self, transaction_type) -> bool:
        return await self._apply_immediate(transaction_type=transaction_type)

    async def set_location(self, location: str) -> bool:
        return await self._apply_immediate(location=location)

    async def set_verified_only(self, verified_only: bool) -> bool:
        return await self._apply_immediate(verified_only=verified_only)

    async def set_featured_only(self, featured_only: bool) -> bool:
        return await self._apply_immediate(featured_only=featured_only)

    async def _apply_immediate(self, **changes) -> bool:
        self._cancel_debounce()
        self._update_filter(**changes)
        return await self._start(reset=True)

    # --- Pagination ---

    async def load_more(self) -> bool:
        """Append the next page. Returns False when the request was dropped."""
        if self.is_fetching or self.has_pending_search:
            logger.debug("load_more dropped, a fetch is already in flight or pending")
            return False
        if not self.has_more:
            return False
        return await self._start(reset=False)

    async def refresh(self) -> bool:
        """Refetch the first page of the current filter."""
        self._cancel_debounce()
        return await self._start(reset=True)

    # --- Local refinements ---

    def set_refinements(self, **changes) -> None:
        """Change client-side refinements; never triggers a request."""
        unknown = set(changes) - set(LOCAL_REFINEMENT_FIELDS)
        if unknown:
            raise ValueError(f"Not a local refinement: {', '.join(sorted(unknown))}")
        self._update_filter(**changes)
        self._notify()

    # --- Fetching ---

    async def _start(self, reset: bool) -> bool:
        offset = 0 if reset else self.filter.offset
        query = self.filter.server_part().model_copy(update={"offset": offset, "limit": self.page_size})
        query_key = f"{query.cache_key()}@{offset}"

        if self._in_flight is not None and self._in_flight[1] == query_key:
            logger.debug("Identical query already in flight, dropping")
            return False

        if reset:
            self.items = []
            self.total = 0
            self.has_more = True
            self.filter = self.filter.model_copy(update={"offset": 0})

        self._latest_request_id += 1
        request_id = self._latest_request_id
        self._in_flight = (request_id, query_key)
        self.state = CoordinatorState.FETCHING
        self.error = None
        self._notify()

        try:
            page = await self._fetch_page(query)
        except Exception as e:
            if request_id != self._latest_request_id:
                logger.debug(f"Discarding failure of superseded request {request_id}: {e}")
                return False
            logger.error(f"Fetching properties failed: {e}")
            self._in_flight = None
            self.state = CoordinatorState.ERROR
            self.error = str(e)
            self._notify()
            return False

        if request_id != self._latest_request_id:
            logger.debug(f"Discarding response of superseded request {request_id}")
            return False

        self._in_flight = None
        self._merge(page, reset=reset)
        self.state = CoordinatorState.IDLE
        self._notify()
        return True

    def _merge(self, page: PropertyPage, reset: bool):
        if reset:
            self.items = []
        seen = {p.key for p in self.items}
        for prop in page.items:
            if prop.key not in seen:
                seen.add(prop.key)
                self.items.append(prop)
        self.total = page.total
        self.has_more = page.has_more
        self.served_from = page.served_from
        self.filter = self.filter.model_copy(update={"offset": self.filter.offset + len(page.items)})
