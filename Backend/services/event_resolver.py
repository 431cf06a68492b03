# Backend/services/event_resolver.py
"""
Event resolution waterfall.

For one identifier the resolver consults, in order:

1. the remote document store (any identifier)
2. the bundled dev-digest table (``dev-digest:`` ids)
3. the live Wikimedia client (``wikimedia:`` ids)
4. the bundled explore-seed table (bare slugs)

The first record found wins. Each step leaves a StepOutcome; when nothing is
found, `reduce_outcomes` reports the earliest recorded error, or NotFound when
every step came back clean. Cancelling `resolve` raises CancelledError in the
caller and returns nothing.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, List, Optional, Sequence, Tuple, Union

import httpx

from app.core.config import settings
from app.core.logging import get_logger
from app.core.resolution_id import with_resolution_id
from app.models.events import EventRecord
from app.services.dev_digest import DevDigestTable, default_dev_digest_table
from app.services.explore_seed import ExploreSeedTable, default_explore_seed_table
from app.services.identifier_classifier import EventNamespace, classify
from services.content_errors import ContentError, NotFoundError, TransportError
from services.document_store import DocumentStore, FirestoreDocumentStore
from services.image_source import attach_image_sources
from services.wikimedia_digest_service import WikimediaDigestClient

logger = get_logger().bind(module="event_resolver")

CONTENT_UNAVAILABLE = "Content unavailable"


class ResolutionStep(str, Enum):
    DOCUMENT_STORE = "document_store"
    DEV_DIGEST = "dev_digest"
    WIKIMEDIA = "wikimedia"
    EXPLORE_SEED = "explore_seed"


class StepStatus(str, Enum):
    FOUND = "found"
    ABSENT = "absent"
    ERRORED = "errored"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class StepOutcome:
    step: ResolutionStep
    status: StepStatus
    record: Optional[EventRecord] = None
    error: Optional[ContentError] = None

    @classmethod
    def found(cls, step: ResolutionStep, record: EventRecord) -> "StepOutcome":
        return cls(step=step, status=StepStatus.FOUND, record=record)

    @classmethod
    def absent(cls, step: ResolutionStep) -> "StepOutcome":
        return cls(step=step, status=StepStatus.ABSENT)

    @classmethod
    def errored(cls, step: ResolutionStep, error: ContentError) -> "StepOutcome":
        return cls(step=step, status=StepStatus.ERRORED, error=error)

    @classmethod
    def skipped(cls, step: ResolutionStep) -> "StepOutcome":
        return cls(step=step, status=StepStatus.SKIPPED)


@dataclass(frozen=True)
class ResolutionFailure:
    """
    Terminal failure for one identifier.

    `user_message` is the only text meant for presentation; `error` keeps the
    underlying cause for diagnostics and retry decisions.
    """

    identifier: str
    error: ContentError
    outcomes: Tuple[StepOutcome, ...] = ()
    user_message: str = CONTENT_UNAVAILABLE

    @property
    def cause(self) -> str:
        if isinstance(self.error, TransportError):
            return "transport"
        if isinstance(self.error, NotFoundError):
            return "not_found"
        return "error"

    @property
    def retryable(self) -> bool:
        return isinstance(self.error, TransportError)


ResolutionResult = Union[EventRecord, ResolutionFailure]


def reduce_outcomes(identifier: str, outcomes: Sequence[StepOutcome]) -> ResolutionResult:
    """First found record, else the first recorded error, else NotFound."""
    for outcome in outcomes:
        if outcome.status is StepStatus.FOUND and outcome.record is not None:
            return outcome.record

    first_error = next(
        (o.error for o in outcomes if o.status is StepStatus.ERRORED and o.error is not None),
        None,
    )
    return ResolutionFailure(
        identifier=identifier,
        error=first_error or NotFoundError(identifier),
        outcomes=tuple(outcomes),
    )


class EventResolver:
    def __init__(
        self,
        *,
        store: Optional[DocumentStore] = None,
        wikimedia: Optional[WikimediaDigestClient] = None,
        dev_table: Optional[DevDigestTable] = None,
        explore_table: Optional[ExploreSeedTable] = None,
    ) -> None:
        self.store = store
        self.wikimedia = wikimedia
        self.dev_table = dev_table if dev_table is not None else default_dev_digest_table()
        self.explore_table = explore_table if explore_table is not None else default_explore_seed_table()

    async def resolve(self, identifier: str) -> ResolutionResult:
        event_id = (identifier or "").strip()
        if not event_id:
            return ResolutionFailure(identifier=identifier or "", error=NotFoundError(identifier or ""))

        with with_resolution_id():
            namespace = classify(event_id)
            logger.info("event_resolution_started", event_id=event_id, namespace=namespace.value)

            outcomes = await self._run_steps(event_id, namespace)
            result = reduce_outcomes(event_id, outcomes)

            if isinstance(result, ResolutionFailure):
                logger.warning(
                    "event_resolution_failed",
                    event_id=event_id,
                    cause=result.cause,
                    error=str(result.error),
                    steps=[f"{o.step.value}:{o.status.value}" for o in outcomes],
                )
                return result

            logger.info("event_resolved", event_id=event_id, step=outcomes[-1].step.value)
            return attach_image_sources(result)

    async def resolve_event(self, identifier: str) -> EventRecord:
        """
        Like `resolve`, but raises the failure's error.

        Raises:
            TransportError: If a consulted source failed and nothing was found
            NotFoundError: If every source came back clean without a record
        """
        result = await self.resolve(identifier)
        if isinstance(result, ResolutionFailure):
            raise result.error
        return result

    async def _run_steps(self, event_id: str, namespace: EventNamespace) -> List[StepOutcome]:
        outcomes: List[StepOutcome] = []

        outcomes.append(await self._from_store(event_id))
        if outcomes[-1].status is StepStatus.FOUND:
            return outcomes

        outcomes.append(self._from_dev_digest(event_id, namespace))
        if outcomes[-1].status is StepStatus.FOUND:
            return outcomes

        outcomes.append(await self._from_wikimedia(event_id, namespace))
        if outcomes[-1].status is StepStatus.FOUND:
            return outcomes

        outcomes.append(self._from_explore_seed(event_id, namespace))
        return outcomes

    async def _from_store(self, event_id: str) -> StepOutcome:
        step = ResolutionStep.DOCUMENT_STORE
        if self.store is None:
            return StepOutcome.skipped(step)
        try:
            record = await self.store.get_event(event_id)
        except TransportError as exc:
            logger.warning("event_store_lookup_failed", event_id=event_id, error=str(exc), status_code=exc.status_code)
            return StepOutcome.errored(step, exc)
        return StepOutcome.found(step, record) if record is not None else StepOutcome.absent(step)

    def _from_dev_digest(self, event_id: str, namespace: EventNamespace) -> StepOutcome:
        step = ResolutionStep.DEV_DIGEST
        if namespace is not EventNamespace.DEV_DIGEST:
            return StepOutcome.skipped(step)
        record = self.dev_table.get(event_id)
        return StepOutcome.found(step, record) if record is not None else StepOutcome.absent(step)

    async def _from_wikimedia(self, event_id: str, namespace: EventNamespace) -> StepOutcome:
        step = ResolutionStep.WIKIMEDIA
        if namespace is not EventNamespace.WIKIMEDIA or self.wikimedia is None:
            return StepOutcome.skipped(step)
        try:
            record = await self.wikimedia.resolve_event_by_id(event_id)
        except TransportError as exc:
            logger.warning("event_wikimedia_lookup_failed", event_id=event_id, error=str(exc), status_code=exc.status_code)
            return StepOutcome.errored(step, exc)
        return StepOutcome.found(step, record) if record is not None else StepOutcome.absent(step)

    def _from_explore_seed(self, event_id: str, namespace: EventNamespace) -> StepOutcome:
        step = ResolutionStep.EXPLORE_SEED
        if namespace is not EventNamespace.EXPLORE_SEED:
            return StepOutcome.skipped(step)
        record = self.explore_table.get(event_id)
        return StepOutcome.found(step, record) if record is not None else StepOutcome.absent(step)


@asynccontextmanager
async def open_event_resolver(
    *,
    store: Optional[DocumentStore] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> AsyncIterator[EventResolver]:
    """
    Resolver wired from settings: the Firestore store when a project is
    configured, and a Wikimedia client holding the bundled alias table and
    that same store. Clients opened here are closed on exit.
    """
    owns_store = False
    if store is None and settings.FIRESTORE_PROJECT_ID:
        store = FirestoreDocumentStore(client=http_client)
        owns_store = True

    try:
        async with WikimediaDigestClient(store=store, client=http_client) as wikimedia:
            yield EventResolver(store=store, wikimedia=wikimedia)
    finally:
        if owns_store:
            await store.aclose()
