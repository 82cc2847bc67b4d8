"""Fire-and-forget delivery of audit records."""

import asyncio
from typing import List, Optional, Set

from ..core.abc import AuditSink, Logger, Meter
from ..core.logging import get_logger
from ..core.types import SimilarityAuditRecord
from ..core.util import hash_text, preview


class AuditDispatcher:
    """
    Hands records to the audit sink on detached tasks.

    submit() never raises and never waits for the sink: a slow or failing
    sink is bounded by the timeout, logged, and otherwise ignored. Callers'
    return values are unaffected by anything that happens here.
    """

    def __init__(self, *, sink: Optional[AuditSink], timeout: float = 2.0,
                 logger: Optional[Logger] = None, meter: Optional[Meter] = None):
        self.sink = sink
        self.timeout = timeout
        self.log = logger or get_logger(__name__)
        self.meter = meter
        self._pending: Set[asyncio.Task] = set()

    @property
    def enabled(self) -> bool:
        return self.sink is not None

    def submit(self, record: SimilarityAuditRecord) -> Optional[asyncio.Task]:
        if self.sink is None:
            return None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as e:
            self.log.error("Audit record dropped, no running event loop", error=str(e))
            return None
        task = loop.create_task(self._deliver(record))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _deliver(self, record: SimilarityAuditRecord) -> None:
        try:
            await asyncio.wait_for(self.sink.record(record), timeout=self.timeout)
        except asyncio.TimeoutError:
            self._failed(record, f"timed out after {self.timeout}s")
        except Exception as e:
            self._failed(record, str(e))

    def _failed(self, record: SimilarityAuditRecord, error: str) -> None:
        if self.meter:
            self.meter.inc("promptgate.audit.failed")
        self.log.error("Audit sink write failed", error=error,
                       action=record.action_taken, trace_id=record.trace_id)

    async def drain(self) -> None:
        """Wait for in-flight deliveries (used at shutdown and in tests)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


class InMemoryAuditSink:
    """Keeps records in a list; useful for tests and local runs."""

    def __init__(self):
        self.records: List[SimilarityAuditRecord] = []

    async def record(self, entry: SimilarityAuditRecord) -> None:
        self.records.append(entry)


class LoggingAuditSink:
    """Writes a one-line summary of each record to a Logger."""

    def __init__(self, logger: Optional[Logger] = None):
        self.log = logger or get_logger("promptgate.audit")

    async def record(self, entry: SimilarityAuditRecord) -> None:
        self.log.info("similarity_audit",
                      action=entry.action_taken,
                      score_percent=entry.score_percent,
                      method=entry.method_used,
                      threshold=entry.threshold_used,
                      org_id=entry.org_id,
                      trace_id=entry.trace_id,
                      prompt_hash=hash_text(entry.prompt),
                      prompt=preview(entry.prompt, 60))
