"""Sequential, paced authorization of many documents."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Hashable, Iterable, Optional, Protocol, Sequence

from .auth import AuthenticationError
from .client import AuthorizationClient, SubmissionUncertainError
from .codec import ProtocolError
from .documents import AuthorizationResult, FiscalDocument
from .http import TransportError

logger = logging.getLogger(__name__)

DocumentId = Hashable
DocumentLoader = Callable[[DocumentId], FiscalDocument]

RETRYABLE_ERRORS = (TransportError, ProtocolError, AuthenticationError, SubmissionUncertainError)


class FixedIntervalPacer:
    """Keep at least ``interval`` seconds between consecutive ``wait()`` returns."""

    def __init__(
        self,
        interval: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.interval = max(float(interval), 0.0)
        self._clock = clock
        self._sleep = sleep
        self._last: Optional[float] = None

    def wait(self) -> None:
        if self._last is not None:
            remaining = self.interval - (self._clock() - self._last)
            if remaining > 0:
                self._sleep(remaining)
        self._last = self._clock()


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retries for infrastructure failures, linear backoff."""

    max_attempts: int = 1
    backoff: float = 2.0

    def should_retry(self, exc: BaseException, attempt: int) -> bool:
        return attempt < self.max_attempts and isinstance(exc, RETRYABLE_ERRORS)

    def delay(self, attempt: int) -> float:
        return self.backoff * attempt


class ResultRecorder(Protocol):
    def record(self, document_id: DocumentId, result: AuthorizationResult) -> Any: ...

    def record_failure(self, document_id: DocumentId, exc: BaseException) -> Any: ...


@dataclass(frozen=True)
class BatchFailure:
    document_id: DocumentId
    error: str
    exception: Optional[BaseException] = None
    result: Optional[AuthorizationResult] = None


@dataclass
class BatchResult:
    succeeded: list[DocumentId] = field(default_factory=list)
    failed: list[BatchFailure] = field(default_factory=list)
    results: dict[DocumentId, AuthorizationResult] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return len(self.succeeded) + len(self.failed)


class BatchAuthorizer:
    """Authorize documents one at a time, never aborting on a single failure."""

    def __init__(
        self,
        client: AuthorizationClient,
        load_document: DocumentLoader,
        *,
        recorder: Optional[ResultRecorder] = None,
        pacer: Optional[FixedIntervalPacer] = None,
        retry_policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._client = client
        self._load_document = load_document
        self._recorder = recorder
        self._pacer = pacer or FixedIntervalPacer(1.0)
        self._retry = retry_policy or RetryPolicy()
        self._sleep = sleep

    def _submit(self, document: FiscalDocument, pending: Optional[SubmissionUncertainError]) -> AuthorizationResult:
        if pending is not None:
            result = self._client.reconcile(document, pending)
            if result is not None:
                return result
        return self._client.authorize(document)

    def _attempt(self, document_id: DocumentId, document: FiscalDocument) -> AuthorizationResult:
        attempt = 1
        # Last submission whose answer never arrived; looked up before resubmitting.
        pending: Optional[SubmissionUncertainError] = None
        while True:
            self._pacer.wait()
            try:
                result = self._submit(document, pending)
            except Exception as exc:
                if isinstance(exc, SubmissionUncertainError):
                    pending = exc
                if self._recorder is not None:
                    self._recorder.record_failure(document_id, exc)
                if not self._retry.should_retry(exc, attempt):
                    raise
                logger.warning("AFIP: intento %s fallido para %s, reintentando: %s", attempt, document_id, exc)
                self._sleep(self._retry.delay(attempt))
                attempt += 1
                continue

            if self._recorder is not None:
                self._recorder.record(document_id, result)
            return result

    def authorize_batch(self, document_ids: Iterable[DocumentId]) -> BatchResult:
        ids: Sequence[DocumentId] = list(document_ids)
        batch = BatchResult()
        logger.info("AFIP: lote de %s comprobantes", len(ids))

        for document_id in ids:
            try:
                document = self._load_document(document_id)
                result = self._attempt(document_id, document)
            except Exception as exc:
                logger.exception("AFIP: error autorizando comprobante %s", document_id)
                batch.failed.append(BatchFailure(document_id=document_id, error=str(exc), exception=exc))
                continue

            batch.results[document_id] = result
            if result.approved:
                batch.succeeded.append(document_id)
            else:
                batch.failed.append(BatchFailure(document_id=document_id, error=result.summary(), result=result))

        logger.info("AFIP: lote finalizado, %s aprobados, %s con error", len(batch.succeeded), len(batch.failed))
        return batch


__all__ = [
    "BatchAuthorizer",
    "BatchFailure",
    "BatchResult",
    "FixedIntervalPacer",
    "ResultRecorder",
    "RetryPolicy",
]
