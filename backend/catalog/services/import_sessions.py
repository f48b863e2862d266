"""In-memory bulk import sessions.

A session holds the parsed rows of one upload between the preview and commit
requests and moves through parsed → previewed → committing → complete.
Sessions live only in process memory and expire after a period of inactivity.
"""
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from catalog.core.config import settings
from catalog.core.errors import (
    CollaboratorUnavailableError,
    ImportSessionNotFoundError,
    ImportStateError,
)
from catalog.schemas.bulk import (
    BulkCommitResult,
    BulkRow,
    ImportSessionOut,
    ImportState,
    RowPreview,
)
from catalog.services.bulk_import import (
    ProgressCallback,
    commit_previews,
    generate_preview,
    summarize,
)
from catalog.services.categories import CategoryStore
from catalog.services.products import ProductCatalog

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ImportSession:
    rows: list[BulkRow]
    filename: str | None = None
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    state: ImportState = ImportState.parsed
    previews: list[RowPreview] = field(default_factory=list)
    result: BulkCommitResult | None = None
    error: str | None = None
    created_at: datetime = field(default_factory=_now)
    touched_at: datetime = field(default_factory=_now)

    def _require(self, *states: ImportState) -> None:
        if self.state not in states:
            allowed = ", ".join(s.value for s in states)
            raise ImportStateError(f"Import session is {self.state.value}; expected {allowed}")

    async def preview(
        self,
        catalog: ProductCatalog,
        categories: CategoryStore | None = None,
    ) -> list[RowPreview]:
        """Resolve the rows against the catalog. May be repeated until commit."""
        self._require(ImportState.parsed, ImportState.previewed)
        self.previews = await generate_preview(self.rows, catalog, categories)
        self.state = ImportState.previewed
        self.touched_at = _now()
        return self.previews

    async def commit(
        self,
        catalog: ProductCatalog,
        concurrency: int = 1,
        on_progress: ProgressCallback | None = None,
    ) -> BulkCommitResult:
        self._require(ImportState.previewed)
        self.state = ImportState.committing
        self.touched_at = _now()
        try:
            self.result = await commit_previews(self.previews, catalog, concurrency, on_progress)
        except CollaboratorUnavailableError as exc:
            # Rows created before the outage stay created; the session cannot be re-committed.
            self.error = str(exc)
            self.state = ImportState.complete
            logger.error("Bulk commit aborted for session %s: %s", self.id, exc)
            raise
        self.state = ImportState.complete
        self.touched_at = _now()
        return self.result

    def cancel(self) -> None:
        """Drop every row and preview and go back to the parsed state."""
        self._require(ImportState.parsed, ImportState.previewed)
        self.rows = []
        self.previews = []
        self.state = ImportState.parsed
        self.touched_at = _now()

    def to_out(self) -> ImportSessionOut:
        return ImportSessionOut(
            id=self.id,
            state=self.state,
            filename=self.filename,
            created_at=self.created_at,
            summary=summarize(self.previews) if self.previews else None,
            previews=self.previews,
            result=self.result,
            error=self.error,
        )


class ImportSessionRegistry:
    def __init__(self, ttl_minutes: int = settings.BULK_SESSION_TTL_MINUTES):
        self.ttl = timedelta(minutes=ttl_minutes)
        self._sessions: dict[uuid.UUID, ImportSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def create(self, rows: list[BulkRow], filename: str | None = None) -> ImportSession:
        self.purge_expired()
        session = ImportSession(rows=rows, filename=filename)
        self._sessions[session.id] = session
        logger.info("Import session %s created with %d rows", session.id, len(rows))
        return session

    def get(self, session_id: uuid.UUID) -> ImportSession:
        self.purge_expired()
        session = self._sessions.get(session_id)
        if session is None:
            raise ImportSessionNotFoundError(session_id)
        return session

    def discard(self, session_id: uuid.UUID) -> None:
        session = self.get(session_id)
        if session.state != ImportState.complete:
            session.cancel()
        del self._sessions[session_id]
        logger.info("Import session %s cancelled", session_id)

    def purge_expired(self, now: datetime | None = None) -> int:
        now = now or _now()
        expired = [
            sid
            for sid, s in self._sessions.items()
            if s.state != ImportState.committing and now - s.touched_at > self.ttl
        ]
        for sid in expired:
            del self._sessions[sid]
        if expired:
            logger.info("Purged %d expired import session(s)", len(expired))
        return len(expired)


registry = ImportSessionRegistry()
