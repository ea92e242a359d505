"""Publication store — current/next envelopes with optimistic concurrency.

Every write is a compare-and-swap on the stored ``etag``:
``UPDATE ... WHERE id = :id AND etag = :expected``.  A write whose token no
longer matches affects no rows and is reported as a conflict; nothing is ever
blindly overwritten or merged.
"""

import hashlib
import json
from collections.abc import Callable, Iterable, Sequence
from datetime import UTC, datetime
from typing import Any, Generic, TypeVar

from loguru import logger
from pydantic import BaseModel
from sqlalchemy import Delete, delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_api.core.errors import (
    DELETE_PUBLISHED_FORBIDDEN,
    DUPLICATE_RESOURCE,
    ETAG_MISMATCH,
    RESOURCE_STATE,
    ConflictError,
    ForbiddenError,
    NotFoundError,
)
from catalog_api.models.base import Base
from catalog_api.schemas.common import VersionedResource

DocT = TypeVar("DocT", bound=BaseModel)

# Attempts made by internal writes before giving up on a contended resource
MAX_WRITE_ATTEMPTS = 3


def dump_document(doc: BaseModel | None) -> dict | None:
    """Serialize a document for storage (JSON-compatible, nulls dropped)."""
    if doc is None:
        return None
    return doc.model_dump(mode="json", exclude_none=True)


def compute_etag(current: dict | None, next_doc: dict | None) -> str:
    """SHA-1 hex digest of the stored envelope contents."""
    body = json.dumps({"current": current, "next": next_doc}, sort_keys=True, separators=(",", ":"))
    return hashlib.sha1(body.encode()).hexdigest()  # noqa: S324


def merge_patch(draft: dict, patch: dict) -> dict:
    """Apply a partial update to a draft document.

    Top-level fields are replaced; the ``links`` block is merged per link so
    that updating one link keeps the others.
    """
    merged = dict(draft)
    for key, value in patch.items():
        if key == "links" and isinstance(value, dict) and isinstance(merged.get("links"), dict):
            merged["links"] = {**merged["links"], **value}
        else:
            merged[key] = value
    return merged


class PublicationStore(Generic[DocT]):
    """Persistence of one resource kind as ``{id, current, next, etag}`` envelopes.

    Args:
        session: Database session.
        record_cls: ORM model holding the envelopes.
        doc_cls: Pydantic model of the documents.
        not_found: Message raised when an envelope does not exist.
        lookup: Derives the record's lookup columns from the draft document.
    """

    def __init__(
        self,
        session: AsyncSession,
        record_cls: type[Base],
        doc_cls: type[DocT],
        not_found: str,
        lookup: Callable[[DocT], dict[str, Any]] | None = None,
    ) -> None:
        self.session = session
        self.record_cls: Any = record_cls
        self.doc_cls = doc_cls
        self.not_found = not_found
        self._lookup = lookup or (lambda _doc: {})
        self.envelope_cls = VersionedResource[doc_cls]

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _to_envelope(self, record: Any) -> VersionedResource[DocT]:
        return self.envelope_cls(
            id=record.id,
            current=self.doc_cls.model_validate(record.current) if record.current is not None else None,
            next=self.doc_cls.model_validate(record.next),
            etag=record.etag,
        )

    async def _load(self, resource_id: str) -> Any:
        result = await self.session.execute(
            select(self.record_cls)
            .where(self.record_cls.id == resource_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def exists(self, resource_id: str) -> bool:
        return await self._load(resource_id) is not None

    async def get_envelope(self, resource_id: str) -> VersionedResource[DocT]:
        """Return the full envelope regardless of caller privilege.

        Raises:
            NotFoundError: If no envelope has this id.
        """
        record = await self._load(resource_id)
        if record is None:
            raise NotFoundError(self.not_found)
        return self._to_envelope(record)

    async def get(self, resource_id: str, privileged: bool) -> VersionedResource[DocT]:
        """Return the envelope as visible to the caller.

        Public callers only ever see ``current``; an unpublished resource is
        reported as not found rather than forbidden.
        """
        envelope = await self.get_envelope(resource_id)
        if privileged:
            return envelope
        if envelope.current is None:
            raise NotFoundError(self.not_found)
        return self.envelope_cls(id=envelope.id, current=envelope.current)

    async def find(self, **filters: Any) -> VersionedResource[DocT] | None:
        """Return the single envelope matching the lookup-column filters, if any."""
        query = select(self.record_cls).execution_options(populate_existing=True)
        for column, value in filters.items():
            query = query.where(getattr(self.record_cls, column) == value)
        result = await self.session.execute(query)
        record = result.scalars().first()
        return self._to_envelope(record) if record is not None else None

    async def list(
        self,
        privileged: bool,
        *,
        order_by: str = "id",
        **filters: Any,
    ) -> list[VersionedResource[DocT]]:
        """List envelopes matching the filters.

        Public callers only receive published envelopes, stripped to ``current``.
        A filter given as a list or set matches any of its values.
        """
        query = select(self.record_cls).execution_options(populate_existing=True)
        for column, value in filters.items():
            if value is None:
                continue
            attr = getattr(self.record_cls, column)
            if isinstance(value, list | set | frozenset | tuple):
                query = query.where(attr.in_(list(value)))
            else:
                query = query.where(attr == value)
        if not privileged:
            query = query.where(self.record_cls.current.is_not(None))
        query = query.order_by(getattr(self.record_cls, order_by))
        result = await self.session.execute(query)

        envelopes = [self._to_envelope(r) for r in result.scalars().all()]
        if privileged:
            return envelopes
        return [self.envelope_cls(id=e.id, current=e.current) for e in envelopes]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create(
        self,
        resource_id: str,
        next_doc: DocT,
        current: DocT | None = None,
    ) -> VersionedResource[DocT]:
        """Insert a new envelope; ``current`` is empty unless given.

        Raises:
            ConflictError: If the id or the lookup columns clash with an
                existing envelope.
        """
        draft = dump_document(next_doc)
        published = dump_document(current)
        etag = compute_etag(published, draft)
        record = self.record_cls(
            id=resource_id,
            current=published,
            next=draft,
            etag=etag,
            **self._lookup(next_doc),
        )
        self.session.add(record)
        try:
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            logger.warning("Rejected new {} {}: {}", self.record_cls.__tablename__, resource_id, exc.orig)
            raise ConflictError(DUPLICATE_RESOURCE) from exc
        logger.info("Created {} {}", self.record_cls.__tablename__, resource_id)
        return self.envelope_cls(
            id=resource_id,
            current=self.doc_cls.model_validate(published) if published is not None else None,
            next=self.doc_cls.model_validate(draft),
            etag=etag,
        )

    async def _swap(
        self,
        envelope: VersionedResource[DocT],
        expected_etag: str,
        current: DocT | None,
        next_doc: DocT,
    ) -> VersionedResource[DocT] | None:
        """Compare-and-swap write; returns None when the token no longer matches.

        Raises:
            ConflictError: If the new lookup columns clash with another envelope.
        """
        current_data = dump_document(current)
        next_data = dump_document(next_doc)
        new_etag = compute_etag(current_data, next_data)
        try:
            result = await self.session.execute(
                update(self.record_cls)
                .where(self.record_cls.id == envelope.id, self.record_cls.etag == expected_etag)
                .values(current=current_data, next=next_data, etag=new_etag, **self._lookup(next_doc))
                .execution_options(synchronize_session=False)
            )
        except IntegrityError as exc:
            await self.session.rollback()
            logger.warning("Rejected write to {} {}: {}", self.record_cls.__tablename__, envelope.id, exc.orig)
            raise ConflictError(DUPLICATE_RESOURCE) from exc
        if result.rowcount != 1:
            await self.session.rollback()
            return None
        await self.session.commit()
        return self.envelope_cls(
            id=envelope.id,
            current=self.doc_cls.model_validate(current_data) if current_data is not None else None,
            next=self.doc_cls.model_validate(next_data),
            etag=new_etag,
        )

    def _check_state(self, envelope: VersionedResource[DocT], expected_states: Iterable[str] | None) -> None:
        if expected_states is None:
            return
        state = getattr(envelope.next, "state", None)
        if state not in set(expected_states):
            logger.info("{} {} is in state {}", self.record_cls.__tablename__, envelope.id, state)
            raise ConflictError(RESOURCE_STATE)

    async def update_draft(
        self,
        resource_id: str,
        patch: dict,
        if_match: str,
        expected_states: Iterable[str] | None = None,
    ) -> VersionedResource[DocT]:
        """Apply a partial update to ``next``; ``current`` is never touched.

        Raises:
            NotFoundError: If the resource does not exist.
            ConflictError: On a token mismatch or a draft outside ``expected_states``.
        """
        envelope = await self.get_envelope(resource_id)
        if envelope.etag != if_match:
            raise ConflictError(ETAG_MISMATCH)
        self._check_state(envelope, expected_states)
        draft = self.doc_cls.model_validate(merge_patch(dump_document(envelope.next) or {}, patch))
        return await self._swap_or_conflict(envelope, if_match, envelope.current, draft)

    async def replace_draft(self, resource_id: str, next_doc: DocT, if_match: str) -> VersionedResource[DocT]:
        """Replace ``next`` wholesale, guarded by the caller's token."""
        envelope = await self.get_envelope(resource_id)
        if envelope.etag != if_match:
            raise ConflictError(ETAG_MISMATCH)
        return await self._swap_or_conflict(envelope, if_match, envelope.current, next_doc)

    async def _swap_or_conflict(
        self,
        envelope: VersionedResource[DocT],
        expected_etag: str,
        current: DocT | None,
        next_doc: DocT,
    ) -> VersionedResource[DocT]:
        written = await self._swap(envelope, expected_etag, current, next_doc)
        if written is None:
            logger.warning("Lost write race on {} {}", self.record_cls.__tablename__, envelope.id)
            raise ConflictError(ETAG_MISMATCH)
        return written

    async def amend_draft(self, resource_id: str, patch: dict) -> VersionedResource[DocT]:
        """Apply a service-internal partial update to ``next``.

        Uses the token read at the start of each attempt and retries a lost
        race a bounded number of times.  A patch that changes nothing is not
        written.
        """
        for _attempt in range(MAX_WRITE_ATTEMPTS):
            envelope = await self.get_envelope(resource_id)
            draft = self.doc_cls.model_validate(merge_patch(dump_document(envelope.next) or {}, patch))
            if dump_document(draft) == dump_document(envelope.next):
                return envelope
            written = await self._swap(envelope, envelope.etag or "", envelope.current, draft)
            if written is not None:
                return written
        raise ConflictError(ETAG_MISMATCH)

    async def revert_draft(self, resource_id: str) -> VersionedResource[DocT]:
        """Discard the draft, resetting ``next`` to a copy of ``current``."""
        for _attempt in range(MAX_WRITE_ATTEMPTS):
            envelope = await self.get_envelope(resource_id)
            if envelope.current is None:
                return envelope
            written = await self._swap(
                envelope, envelope.etag or "", envelope.current, envelope.current.model_copy(deep=True)
            )
            if written is not None:
                logger.info("Reverted draft of {} {}", self.record_cls.__tablename__, resource_id)
                return written
        raise ConflictError(ETAG_MISMATCH)

    async def publish(self, resource_id: str) -> VersionedResource[DocT]:
        """Replace ``current`` with ``next``, retaining ``next``.

        ``next.last_updated`` is stamped and ``next.collection_id`` cleared
        first, so both sides are identical afterwards.  Publishing an already
        published envelope is a no-op.  The write is guarded by the token read
        at the start of the attempt, so a draft written concurrently is never
        published unseen.
        """
        for _attempt in range(MAX_WRITE_ATTEMPTS):
            envelope = await self.get_envelope(resource_id)
            if envelope.current is not None and dump_document(envelope.current) == dump_document(envelope.next):
                logger.info("{} {} already published", self.record_cls.__tablename__, resource_id)
                return envelope

            draft = envelope.next.model_copy(deep=True)  # type: ignore[union-attr]
            if "last_updated" in type(draft).model_fields:
                draft.last_updated = datetime.now(UTC)  # type: ignore[attr-defined]
            if "collection_id" in type(draft).model_fields:
                draft.collection_id = None  # type: ignore[attr-defined]

            written = await self._swap(envelope, envelope.etag or "", draft.model_copy(deep=True), draft)
            if written is not None:
                logger.info("Published {} {}", self.record_cls.__tablename__, resource_id)
                return written
            logger.warning("Publish of {} {} lost a write race, retrying", self.record_cls.__tablename__, resource_id)
        raise ConflictError(ETAG_MISMATCH)

    async def delete(self, resource_id: str, dependents: Sequence[Delete] = ()) -> None:
        """Hard-delete an unpublished envelope.

        ``dependents`` are further deletes committed in the same transaction,
        so the envelope and the records hanging off it go together or not at
        all.

        Raises:
            NotFoundError: If the resource does not exist.
            ForbiddenError: If the resource has ever been published.
            ConflictError: If the envelope changed since it was read.
        """
        envelope = await self.get_envelope(resource_id)
        if envelope.current is not None:
            raise ForbiddenError(DELETE_PUBLISHED_FORBIDDEN)
        for statement in dependents:
            await self.session.execute(statement.execution_options(synchronize_session=False))
        result = await self.session.execute(
            delete(self.record_cls)
            .where(self.record_cls.id == resource_id, self.record_cls.etag == envelope.etag)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            await self.session.rollback()
            raise ConflictError(ETAG_MISMATCH)
        await self.session.commit()
        logger.info("Deleted {} {}", self.record_cls.__tablename__, resource_id)
