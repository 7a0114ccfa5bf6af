"""Screening run orchestration."""

from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeout, wait as wait_futures
from dataclasses import dataclass, field
from typing import Any, Iterable

import structlog
from sqlalchemy.exc import SQLAlchemyError

from .audit import AuditLogger, NullAuditLogger
from .core import ResumeContentProvider, ScoringClient
from .core.aggregator import ScoreAggregator
from .db import Database, JobRepository, ResumeRepository, RunRepository
from .errors import (
    AutoHireError,
    ContentUnavailable,
    InsufficientData,
    InvalidRequest,
    InvalidScore,
    JobNotFound,
    PersistenceFault,
    RunNotFound,
    ScoringError,
    ScoringErrorKind,
)
from .schemas.job import JobOpening
from .schemas.run import AIScreenRun
from .schemas.scoring import JobContext, ScoringRequest, ScoringResponse
from .scoring import build_job_context

CANCELLED_ERROR = "Cancelled: screening run was cancelled before all resumes were processed"

_ITEM_ERRORS = (ScoringError, ContentUnavailable, InsufficientData, InvalidScore)

_FINALIZE_ATTEMPTS = 3
_FINALIZE_BACKOFF_SECONDS = 0.05


@dataclass(slots=True)
class WorkItem:
    """Snapshot of the resume fields a worker needs."""

    resume_id: str
    candidate_id: str
    candidate_name: str
    file_ref: str


@dataclass(slots=True)
class ItemOutcome:
    """Result of scoring one resume, before it is persisted."""

    item: WorkItem
    composite: float | None = None
    fit_level: str | None = None
    decision: str | None = None
    sub_scores: dict[str, float] = field(default_factory=dict)
    matched_skills: list[str] = field(default_factory=list)
    missing_skills: list[str] = field(default_factory=list)
    red_flags: list[str] = field(default_factory=list)
    strong_signals: list[str] = field(default_factory=list)
    concerns: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_entry(self) -> dict[str, Any]:
        return {
            "resume_id": self.item.resume_id,
            "candidate_id": self.item.candidate_id,
            "candidate_name": self.item.candidate_name,
            "score": self.composite,
            "fit_level": self.fit_level,
            "status": self.decision,
            "matched_skills": self.matched_skills,
            "missing_skills": self.missing_skills,
            "red_flags": self.red_flags,
            "strong_signals": self.strong_signals,
            "concerns": self.concerns,
            "error": self.error,
        }


class _RunFault(AutoHireError):
    kind = "RunFault"


@dataclass
class _RunHandle:
    run_id: str
    job_id: str
    total: int
    lock: threading.Lock = field(default_factory=threading.Lock)
    stop: threading.Event = field(default_factory=threading.Event)
    cancelled: threading.Event = field(default_factory=threading.Event)
    finished: threading.Event = field(default_factory=threading.Event)
    fault: str | None = None
    scoring_pool: ThreadPoolExecutor | None = None

    def fail(self, message: str) -> None:
        if self.fault is None:
            self.fault = message
        self.stop.set()


class ScreeningRunCoordinator:
    """Drive resumes of one job through scoring and record run progress.

    Each run is an independent record addressed by id. Items are processed by
    a bounded worker pool; per-item failures are recorded and counted, while
    persistence faults, a vanished job or cancellation stop the run as
    ``failed``.
    """

    def __init__(
        self,
        *,
        database: Database,
        scoring_client: ScoringClient,
        content_provider: ResumeContentProvider,
        aggregator: ScoreAggregator,
        max_workers: int = 4,
        scoring_timeout_seconds: float = 30.0,
        reject_concurrent_runs: bool = False,
        audit_logger: AuditLogger | NullAuditLogger | None = None,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        if scoring_timeout_seconds <= 0:
            raise ValueError("scoring_timeout_seconds must be > 0")
        self._database = database
        self._scoring = scoring_client
        self._content = content_provider
        self._aggregator = aggregator
        self._max_workers = max_workers
        self._scoring_timeout = float(scoring_timeout_seconds)
        self._reject_concurrent_runs = reject_concurrent_runs
        self._audit = audit_logger or NullAuditLogger()
        self._handles: dict[str, _RunHandle] = {}
        self._handles_lock = threading.Lock()
        self._start_lock = threading.Lock()
        self._logger = structlog.get_logger(__name__)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def start_run(self, job_id: str, resume_ids: Iterable[str]) -> str:
        """Create a run record and start processing it in the background."""
        ids = list(resume_ids or [])
        if not ids:
            raise InvalidRequest("resume_ids must not be empty")
        if len(set(ids)) != len(ids):
            raise InvalidRequest("resume_ids must not contain duplicates")

        with self._start_lock, self._database.session_scope() as session:
            job_record = JobRepository(session).get(job_id)
            if job_record is None:
                raise JobNotFound(job_id)
            runs = RunRepository(session)
            if self._reject_concurrent_runs and runs.active_for_job(job_id) is not None:
                raise InvalidRequest(f"a screening run is already active for job {job_id!r}")

            records = {r.id: r for r in ResumeRepository(session).get_many_for_job(job_id, ids)}
            missing = [resume_id for resume_id in ids if resume_id not in records]
            if missing:
                raise InvalidRequest(f"resumes not found for job {job_id!r}: {missing}")

            job_context = build_job_context(JobOpening.model_validate(job_record))
            items = [
                WorkItem(
                    resume_id=resume_id,
                    candidate_id=records[resume_id].candidate_id,
                    candidate_name=records[resume_id].candidate_name,
                    file_ref=records[resume_id].file_ref,
                )
                for resume_id in ids
            ]
            run_id = runs.create(job_id, total=len(items)).id

        handle = _RunHandle(run_id=run_id, job_id=job_id, total=len(items))
        with self._handles_lock:
            self._handles[run_id] = handle

        self._logger.info("screen_run.started", run_id=run_id, job_id=job_id, total=len(items))
        thread = threading.Thread(
            target=self._drive,
            args=(handle, job_context, items),
            name=f"screen-run-{run_id[:8]}",
            daemon=True,
        )
        thread.start()
        return run_id

    def get_run(self, run_id: str) -> AIScreenRun:
        with self._database.session_scope() as session:
            record = RunRepository(session).get(run_id)
            if record is None:
                raise RunNotFound(run_id)
            return AIScreenRun.model_validate(record)

    def get_progress(self, run_id: str) -> dict[str, Any]:
        return self.get_run(run_id).progress()

    def list_runs(self, job_id: str) -> list[AIScreenRun]:
        with self._database.session_scope() as session:
            return [AIScreenRun.model_validate(r) for r in RunRepository(session).list_for_job(job_id)]

    def active_run_for_job(self, job_id: str) -> AIScreenRun | None:
        with self._database.session_scope() as session:
            record = RunRepository(session).active_for_job(job_id)
            return AIScreenRun.model_validate(record) if record is not None else None

    def cancel_run(self, run_id: str) -> bool:
        """Stop dispatching new items; returns False if the run is not active here."""
        with self._handles_lock:
            handle = self._handles.get(run_id)
        if handle is None:
            self.get_run(run_id)
            return False
        if handle.finished.is_set():
            return False
        handle.cancelled.set()
        handle.stop.set()
        self._logger.info("screen_run.cancel_requested", run_id=run_id)
        return True

    def wait(self, run_id: str, timeout: float | None = None) -> AIScreenRun:
        with self._handles_lock:
            handle = self._handles.get(run_id)
        if handle is not None:
            handle.finished.wait(timeout)
        return self.get_run(run_id)

    def run(self, job_id: str, resume_ids: Iterable[str], timeout: float | None = None) -> AIScreenRun:
        """Start a run and block until it is done."""
        return self.wait(self.start_run(job_id, resume_ids), timeout=timeout)

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------
    def _drive(self, handle: _RunHandle, job_context: JobContext, items: list[WorkItem]) -> None:
        log = self._logger.bind(run_id=handle.run_id, job_id=handle.job_id)
        workers = min(self._max_workers, len(items))
        # Timed-out calls keep their slot until the client returns.
        handle.scoring_pool = ThreadPoolExecutor(
            max_workers=workers * 2, thread_name_prefix=f"score-{handle.run_id[:8]}"
        )
        try:
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix=f"screen-{handle.run_id[:8]}") as pool:
                futures = [pool.submit(self._process_item, handle, job_context, item) for item in items]
                wait_futures(futures)
            for future in futures:
                if future.exception() is not None:
                    handle.fail(f"RunFault: {future.exception()}")
                    log.error("screen_run.worker_crashed", exc_info=future.exception())
        finally:
            handle.scoring_pool.shutdown(wait=False, cancel_futures=True)
            try:
                self._finalize(handle, log)
            finally:
                handle.finished.set()
                with self._handles_lock:
                    self._handles.pop(handle.run_id, None)

    def _process_item(self, handle: _RunHandle, job_context: JobContext, item: WorkItem) -> None:
        if handle.stop.is_set():
            return
        outcome = self._score_item(handle, job_context, item)
        with handle.lock:
            if handle.fault is not None:
                return
            try:
                self._record(handle, outcome)
            except _RunFault as exc:
                handle.fail(exc.describe())
            except SQLAlchemyError as exc:
                fault = PersistenceFault(f"storage failure while recording resume {item.resume_id}: {exc}")
                handle.fail(fault.describe())
                self._logger.error("screen_run.persistence_fault", run_id=handle.run_id, error=str(exc))

    def _score_item(self, handle: _RunHandle, job_context: JobContext, item: WorkItem) -> ItemOutcome:
        try:
            text = self._fetch_text(item)
            response = self._call_scoring(
                handle, ScoringRequest(job=job_context, resume_id=item.resume_id, resume_text=text)
            )
            result = self._aggregator.aggregate(response.sub_scores)
        except _ITEM_ERRORS as exc:
            self._logger.warning(
                "screen_run.item_failed",
                resume_id=item.resume_id,
                error_kind=exc.kind,
                error=str(exc),
            )
            return ItemOutcome(item=item, error=exc.describe())

        return ItemOutcome(
            item=item,
            composite=result.composite,
            fit_level=result.fit_level,
            decision=result.decision,
            sub_scores=response.sub_scores.present(),
            matched_skills=list(response.matched_skills),
            missing_skills=list(response.missing_skills),
            red_flags=list(response.red_flags),
            strong_signals=list(response.strong_signals),
            concerns=list(response.concerns),
        )

    def _fetch_text(self, item: WorkItem) -> str:
        try:
            return self._content.fetch_text(item.file_ref)
        except _ITEM_ERRORS:
            raise
        except Exception as exc:  # noqa: BLE001
            self._logger.exception("resume_text.provider_crashed", resume_id=item.resume_id)
            raise ContentUnavailable(f"cannot read {item.file_ref!r}: {exc}") from exc

    def _call_scoring(self, handle: _RunHandle, request: ScoringRequest) -> ScoringResponse:
        future = handle.scoring_pool.submit(self._scoring.score, request, timeout=self._scoring_timeout)
        try:
            return future.result(timeout=self._scoring_timeout)
        except FuturesTimeout as exc:
            future.cancel()
            raise ScoringError(
                ScoringErrorKind.TIMEOUT, f"scoring did not answer within {self._scoring_timeout}s"
            ) from exc
        except _ITEM_ERRORS:
            raise
        except Exception as exc:  # noqa: BLE001
            # Any crash inside the external client is a per-item failure.
            self._logger.exception("scoring.client_crashed", resume_id=request.resume_id)
            raise ScoringError(ScoringErrorKind.UNAVAILABLE, f"scoring client error: {exc}") from exc

    def _record(self, handle: _RunHandle, outcome: ItemOutcome) -> None:
        item = outcome.item
        with self._database.session_scope() as session:
            if JobRepository(session).get(handle.job_id) is None:
                raise _RunFault(f"job {handle.job_id} is no longer available")

            resumes = ResumeRepository(session)
            if outcome.ok:
                updated = resumes.apply_score(
                    item.resume_id,
                    composite=outcome.composite,
                    status=outcome.decision,
                    sub_scores=outcome.sub_scores,
                    matched_skills=outcome.matched_skills,
                    missing_skills=outcome.missing_skills,
                )
            else:
                updated = resumes.record_failure(item.resume_id, outcome.error)
            if updated != 1:
                self._logger.warning("screen_run.resume_vanished", run_id=handle.run_id, resume_id=item.resume_id)

            RunRepository(session).record_item(handle.run_id, outcome.to_entry(), outcome.decision)

        self._logger.info(
            "screen_run.item_recorded",
            run_id=handle.run_id,
            resume_id=item.resume_id,
            score=outcome.composite,
            fit_level=outcome.fit_level,
            status=outcome.decision,
            error=outcome.error,
        )

    def _finalize(self, handle: _RunHandle, log) -> None:
        for attempt in range(1, _FINALIZE_ATTEMPTS + 1):
            try:
                self._write_final_state(handle)
                break
            except SQLAlchemyError as exc:
                log.warning("screen_run.finalize_retry", attempt=attempt, error=str(exc))
                time.sleep(_FINALIZE_BACKOFF_SECONDS * attempt)
        else:
            fault = PersistenceFault(f"could not finalize run after {_FINALIZE_ATTEMPTS} attempts")
            try:
                with self._database.session_scope() as session:
                    RunRepository(session).finalize(handle.run_id, "failed", fault.describe())
            except SQLAlchemyError:
                log.exception("screen_run.finalize_failed")
                return

        run = self.get_run(handle.run_id)
        summary = {
            "run_id": run.id,
            "job_id": run.job_id,
            "status": run.status,
            "total": run.total,
            "processed": run.processed,
            "screened_in": run.screened_in,
            "screened_out": run.screened_out,
            "error": run.error,
        }
        self._audit.append("screen_run.finalized", summary)
        if run.status == "completed":
            log.info("screen_run.completed", **{k: v for k, v in summary.items() if k not in ("run_id", "job_id")})
        else:
            log.warning("screen_run.failed", **{k: v for k, v in summary.items() if k not in ("run_id", "job_id")})

    def _write_final_state(self, handle: _RunHandle) -> None:
        with self._database.session_scope() as session:
            runs = RunRepository(session)
            record = runs.get(handle.run_id)
            if handle.fault is not None:
                status, error = "failed", handle.fault
            elif handle.cancelled.is_set() and record.processed < record.total:
                status, error = "failed", CANCELLED_ERROR
            elif record.processed < record.total:
                status, error = "failed", f"RunFault: only {record.processed} of {record.total} resumes were processed"
            else:
                status, error = "completed", None
            runs.finalize(handle.run_id, status, error)
            JobRepository(session).refresh_screening_metadata(handle.job_id)


__all__ = ["CANCELLED_ERROR", "ItemOutcome", "ScreeningRunCoordinator", "WorkItem"]
