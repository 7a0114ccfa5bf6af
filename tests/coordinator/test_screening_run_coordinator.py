from __future__ import annotations

import threading
import time
from pathlib import Path
from typing import Callable

import pytest
from sqlalchemy.exc import OperationalError

from autohire.adapters import InMemoryContentProvider
from autohire.audit import AuditLogger
from autohire.coordinator import CANCELLED_ERROR, ScreeningRunCoordinator
from autohire.core.aggregator import ScoreAggregator
from autohire.db import JobRepository, RunRepository
from autohire.errors import InvalidRequest, JobNotFound, RunNotFound, ScoringError, ScoringErrorKind
from autohire.schemas.scoring import ScoringRequest, ScoringResponse, SubScores


def uniform(score: float, **extra) -> ScoringResponse:
    return ScoringResponse(
        sub_scores=SubScores(semantic=score, skill_match=score, experience=score, metrics=score, complexity=score),
        **extra,
    )


class StubScoringClient:
    """Scoring client returning canned outcomes keyed by resume text."""

    def __init__(
        self,
        outcomes: dict[str, ScoringResponse | Exception],
        *,
        delay: float = 0.0,
        gate: threading.Event | None = None,
        on_call: Callable[[ScoringRequest], None] | None = None,
    ) -> None:
        self._outcomes = outcomes
        self._delay = delay
        self._gate = gate
        self._on_call = on_call
        self._lock = threading.Lock()
        self.calls: list[tuple[str, float]] = []
        self.called = threading.Event()

    def score(self, request: ScoringRequest, *, timeout: float) -> ScoringResponse:
        with self._lock:
            self.calls.append((request.resume_id, timeout))
        self.called.set()
        if self._on_call is not None:
            self._on_call(request)
        if self._gate is not None:
            self._gate.wait(5)
        if self._delay:
            time.sleep(self._delay)
        outcome = self._outcomes[request.resume_text]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def content() -> InMemoryContentProvider:
    return InMemoryContentProvider()


def add_resumes(job_service, content: InMemoryContentProvider, job_id: str, texts: list[str]) -> list[str]:
    ids = []
    for text in texts:
        content.put(f"{text}.txt", text)
        resume = job_service.submit_resume(
            {"job_id": job_id, "candidate_id": f"cand-{text}", "candidate_name": text.title(), "file_ref": f"{text}.txt"}
        )
        ids.append(resume.id)
    return ids


def make_coordinator(database, client, content, **kwargs) -> ScreeningRunCoordinator:
    return ScreeningRunCoordinator(
        database=database,
        scoring_client=client,
        content_provider=content,
        aggregator=ScoreAggregator(screen_in_threshold=60),
        **kwargs,
    )


def test_run_with_mixed_outcomes(database, job_service, job, content, tmp_path: Path) -> None:
    ids = add_resumes(job_service, content, job.id, ["alice", "bob", "carol"])
    client = StubScoringClient(
        {
            "alice": uniform(75, matched_skills=["Python"], strong_signals=["led migration"]),
            "bob": uniform(40, missing_skills=["PostgreSQL"]),
            "carol": ScoringError(ScoringErrorKind.TIMEOUT, "scoring timed out after 7s"),
        }
    )
    audit = AuditLogger(tmp_path / "audit.jsonl")
    coordinator = make_coordinator(database, client, content, scoring_timeout_seconds=7, audit_logger=audit)

    run = coordinator.run(job.id, ids, timeout=10)

    assert run.done is True
    assert run.status == "completed"
    assert run.error is None
    assert (run.total, run.processed, run.screened_in, run.screened_out) == (3, 3, 1, 1)
    assert run.percent == 100

    by_resume = {entry.resume_id: entry for entry in run.results}
    assert by_resume[ids[0]].score == 75.0
    assert by_resume[ids[0]].fit_level == "strong"
    assert by_resume[ids[0]].status == "screened-in"
    assert by_resume[ids[0]].strong_signals == ["led migration"]
    assert by_resume[ids[1]].status == "screened-out"
    assert by_resume[ids[1]].fit_level == "poor"
    assert by_resume[ids[2]].error.startswith("Timeout")
    assert by_resume[ids[2]].score is None
    assert by_resume[ids[2]].status is None

    assert {timeout for _, timeout in client.calls} == {7.0}

    alice = job_service.get_resume(ids[0])
    assert alice.status == "screened-in"
    assert alice.ai_score == 75.0
    assert alice.score == 75.0
    assert alice.semantic_score == 75.0
    assert alice.ml_processed is True
    assert alice.matched_skills == ["Python"]

    carol = job_service.get_resume(ids[2])
    assert carol.status == "uploaded"
    assert carol.ai_score is None
    assert carol.ml_processed is False
    assert carol.ml_error.startswith("Timeout")

    refreshed = job_service.get_job(job.id)
    assert refreshed.total_resumes == 3
    assert refreshed.screened_resumes == 2
    assert refreshed.last_screened_at is not None

    finalized = [entry for entry in audit.read() if entry["event"] == "screen_run.finalized"]
    assert finalized[0]["run_id"] == run.id
    assert finalized[0]["status"] == "completed"


def test_item_errors_are_recorded_not_fatal(database, job_service, job, content) -> None:
    ids = add_resumes(job_service, content, job.id, ["empty", "broken", "crash", "ok"])
    content.put("broken.txt", "")

    class Boom(RuntimeError):
        pass

    client = StubScoringClient(
        {
            "empty": ScoringResponse(),
            "crash": Boom("socket reset"),
            "ok": uniform(90),
        }
    )
    run = make_coordinator(database, client, content).run(job.id, ids, timeout=10)

    errors = {entry.resume_id: entry.error for entry in run.results}
    assert errors[ids[0]].startswith("InsufficientData")
    assert errors[ids[1]].startswith("ContentUnavailable")
    assert errors[ids[2]].startswith("Unavailable")
    assert errors[ids[3]] is None
    assert run.status == "completed"
    assert (run.processed, run.screened_in, run.screened_out) == (4, 1, 0)


def test_out_of_range_sub_score_is_item_error(database, job_service, job, content) -> None:
    ids = add_resumes(job_service, content, job.id, ["odd"])
    client = StubScoringClient({"odd": ScoringResponse(sub_scores=SubScores(semantic=140))})

    run = make_coordinator(database, client, content).run(job.id, ids, timeout=10)

    assert run.results[0].error.startswith("InvalidScore")
    assert run.status == "completed"


def test_counters_consistent_under_parallel_workers(database, job_service, job, content) -> None:
    texts = [f"cand{i}" for i in range(24)]
    ids = add_resumes(job_service, content, job.id, texts)
    outcomes: dict[str, ScoringResponse | Exception] = {}
    for i, text in enumerate(texts):
        if i % 5 == 0:
            outcomes[text] = ScoringError(ScoringErrorKind.UNAVAILABLE, "503")
        else:
            outcomes[text] = uniform(80 if i % 2 else 30)
    client = StubScoringClient(outcomes, delay=0.005)
    coordinator = make_coordinator(database, client, content, max_workers=6)

    run_id = coordinator.start_run(job.id, ids)
    snapshots = []
    deadline = time.monotonic() + 15
    while time.monotonic() < deadline:
        snapshot = coordinator.get_run(run_id)
        snapshots.append(snapshot)
        if snapshot.done:
            break
        time.sleep(0.01)
    assert snapshots[-1].done

    for snapshot in snapshots:
        assert snapshot.processed <= snapshot.total
        assert snapshot.screened_in + snapshot.screened_out <= snapshot.processed
    previous = 0
    for snapshot in snapshots:
        assert snapshot.processed >= previous
        previous = snapshot.processed

    final = snapshots[-1]
    failed = sum(1 for i in range(24) if i % 5 == 0)
    assert final.status == "completed"
    assert final.processed == 24
    assert len(final.results) == 24
    assert final.screened_in + final.screened_out == 24 - failed
    assert sorted(entry.resume_id for entry in final.results) == sorted(ids)


def test_each_start_creates_a_new_run(database, job_service, job, content) -> None:
    ids = add_resumes(job_service, content, job.id, ["alice"])
    client = StubScoringClient({"alice": uniform(70)})
    coordinator = make_coordinator(database, client, content)

    first = coordinator.run(job.id, ids, timeout=10)
    second = coordinator.run(job.id, ids, timeout=10)

    assert first.id != second.id
    assert first.processed == second.processed == 1
    assert {r.id for r in coordinator.list_runs(job.id)} == {first.id, second.id}
    assert coordinator.active_run_for_job(job.id) is None


def test_concurrent_runs_on_same_job_are_independent(database, job_service, job, content) -> None:
    ids = add_resumes(job_service, content, job.id, ["alice", "bob"])
    gate = threading.Event()
    client = StubScoringClient({"alice": uniform(70), "bob": uniform(20)}, gate=gate)
    coordinator = make_coordinator(database, client, content)

    first = coordinator.start_run(job.id, ids)
    second = coordinator.start_run(job.id, ids[:1])
    gate.set()

    assert coordinator.wait(first, timeout=10).processed == 2
    assert coordinator.wait(second, timeout=10).processed == 1


def test_reject_concurrent_runs_policy(database, job_service, job, content) -> None:
    ids = add_resumes(job_service, content, job.id, ["alice"])
    gate = threading.Event()
    client = StubScoringClient({"alice": uniform(70)}, gate=gate)
    coordinator = make_coordinator(database, client, content, reject_concurrent_runs=True)

    run_id = coordinator.start_run(job.id, ids)
    try:
        with pytest.raises(InvalidRequest):
            coordinator.start_run(job.id, ids)
    finally:
        gate.set()

    assert coordinator.wait(run_id, timeout=10).status == "completed"
    assert coordinator.run(job.id, ids, timeout=10).status == "completed"


def test_invalid_start_requests(database, job_service, job, content) -> None:
    ids = add_resumes(job_service, content, job.id, ["alice"])
    other = job_service.create_job({"title": "Designer", "description": "Figma"})
    foreign = job_service.submit_resume({"job_id": other.id, "candidate_id": "x", "file_ref": "x.txt"})
    coordinator = make_coordinator(database, StubScoringClient({}), content)

    with pytest.raises(InvalidRequest):
        coordinator.start_run(job.id, [])
    with pytest.raises(InvalidRequest):
        coordinator.start_run(job.id, [ids[0], ids[0]])
    with pytest.raises(JobNotFound):
        coordinator.start_run("no-such-job", ids)
    with pytest.raises(InvalidRequest):
        coordinator.start_run(job.id, [ids[0], foreign.id])

    job_service.soft_delete_job(other.id)
    with pytest.raises(JobNotFound):
        coordinator.start_run(other.id, [foreign.id])
    assert coordinator.list_runs(job.id) == []


def test_unknown_run_id(database, content) -> None:
    coordinator = make_coordinator(database, StubScoringClient({}), content)

    with pytest.raises(RunNotFound):
        coordinator.get_run("missing")
    with pytest.raises(RunNotFound):
        coordinator.cancel_run("missing")


def test_cancel_stops_dispatch_and_fails_run(database, job_service, job, content) -> None:
    texts = ["a", "b", "c", "d", "e"]
    ids = add_resumes(job_service, content, job.id, texts)
    gate = threading.Event()
    client = StubScoringClient({text: uniform(70) for text in texts}, gate=gate)
    coordinator = make_coordinator(database, client, content, max_workers=1)

    run_id = coordinator.start_run(job.id, ids)
    assert client.called.wait(5)
    assert coordinator.cancel_run(run_id) is True
    gate.set()
    run = coordinator.wait(run_id, timeout=10)

    assert run.done is True
    assert run.status == "failed"
    assert run.error == CANCELLED_ERROR
    assert run.processed == 1
    assert len(client.calls) == 1
    assert coordinator.cancel_run(run_id) is False


def test_job_removed_mid_run_fails_run(database, job_service, job, content) -> None:
    ids = add_resumes(job_service, content, job.id, ["alice", "bob", "carol"])

    deleted = threading.Event()

    def delete_job_once(_request: ScoringRequest) -> None:
        if not deleted.is_set():
            deleted.set()
            job_service.soft_delete_job(job.id)

    client = StubScoringClient(
        {"alice": uniform(80), "bob": uniform(80), "carol": uniform(80)},
        on_call=delete_job_once,
    )
    coordinator = make_coordinator(database, client, content, max_workers=1)

    run = coordinator.run(job.id, ids, timeout=10)

    assert run.done is True
    assert run.status == "failed"
    assert "no longer available" in run.error
    assert run.processed == 0
    assert job_service.get_resume(ids[0]).ai_score is None


def test_persistence_fault_fails_run(database, job_service, job, content, monkeypatch: pytest.MonkeyPatch) -> None:
    ids = add_resumes(job_service, content, job.id, ["alice", "bob"])

    def broken_record_item(self, run_id, entry, outcome):
        raise OperationalError("UPDATE screen_run", {}, Exception("disk I/O error"))

    monkeypatch.setattr(RunRepository, "record_item", broken_record_item)
    client = StubScoringClient({"alice": uniform(80), "bob": uniform(30)})
    coordinator = make_coordinator(database, client, content, max_workers=1)

    run = coordinator.run(job.id, ids, timeout=10)

    assert run.status == "failed"
    assert run.done is True
    assert run.error.startswith("PersistenceFault")
    assert run.processed == 0
    # The resume update shares the failed transaction.
    assert job_service.get_resume(ids[0]).ai_score is None


def test_slow_scoring_call_times_out(database, job_service, job, content) -> None:
    ids = add_resumes(job_service, content, job.id, ["slow"])
    client = StubScoringClient({"slow": uniform(90)}, delay=1.5)
    coordinator = make_coordinator(database, client, content, scoring_timeout_seconds=0.1)

    started = time.monotonic()
    run = coordinator.run(job.id, ids, timeout=10)
    elapsed = time.monotonic() - started

    assert elapsed < 1.5
    assert run.status == "completed"
    assert run.processed == 1
    assert run.results[0].error.startswith("Timeout")
    assert (run.screened_in, run.screened_out) == (0, 0)
    assert client.calls == [(ids[0], 0.1)]


def test_content_provider_crash_is_item_error(database, job_service, job, content) -> None:
    class FlakyContent(InMemoryContentProvider):
        def fetch_text(self, file_ref: str) -> str:
            if file_ref == "bob.txt":
                raise RuntimeError("storage backend exploded")
            return super().fetch_text(file_ref)

    flaky = FlakyContent()
    ids = add_resumes(job_service, flaky, job.id, ["alice", "bob"])
    client = StubScoringClient({"alice": uniform(80)})

    run = make_coordinator(database, client, flaky).run(job.id, ids, timeout=10)

    errors = {entry.resume_id: entry.error for entry in run.results}
    assert run.status == "completed"
    assert run.processed == 2
    assert errors[ids[0]] is None
    assert errors[ids[1]].startswith("ContentUnavailable")
    assert "storage backend exploded" in errors[ids[1]]
    assert [call[0] for call in client.calls] == [ids[0]]


def test_finalize_retries_transient_storage_error(
    database, job_service, job, content, monkeypatch: pytest.MonkeyPatch
) -> None:
    ids = add_resumes(job_service, content, job.id, ["alice"])
    original = JobRepository.refresh_screening_metadata
    failures = []

    def flaky_refresh(self, job_id):
        if not failures:
            failures.append(job_id)
            raise OperationalError("UPDATE job", {}, Exception("database is locked"))
        return original(self, job_id)

    monkeypatch.setattr(JobRepository, "refresh_screening_metadata", flaky_refresh)
    coordinator = make_coordinator(database, StubScoringClient({"alice": uniform(80)}), content)

    run = coordinator.run(job.id, ids, timeout=10)

    assert failures == [job.id]
    assert run.done is True
    assert run.status == "completed"
    assert run.error is None


def test_finalize_failure_does_not_leave_run_active(
    database, job_service, job, content, monkeypatch: pytest.MonkeyPatch
) -> None:
    ids = add_resumes(job_service, content, job.id, ["alice"])

    def broken_refresh(self, job_id):
        raise OperationalError("UPDATE job", {}, Exception("disk I/O error"))

    monkeypatch.setattr(JobRepository, "refresh_screening_metadata", broken_refresh)
    coordinator = make_coordinator(
        database, StubScoringClient({"alice": uniform(80)}), content, reject_concurrent_runs=True
    )

    run = coordinator.run(job.id, ids, timeout=10)

    assert run.done is True
    assert run.status == "failed"
    assert run.error.startswith("PersistenceFault")
    assert coordinator.active_run_for_job(job.id) is None

    monkeypatch.undo()
    assert coordinator.run(job.id, ids, timeout=10).status == "completed"


def test_progress_view(database, job_service, job, content) -> None:
    ids = add_resumes(job_service, content, job.id, ["alice", "bob", "carol"])
    client = StubScoringClient({"alice": uniform(70), "bob": uniform(70), "carol": uniform(70)})
    coordinator = make_coordinator(database, client, content)

    run = coordinator.run(job.id, ids, timeout=10)
    progress = coordinator.get_progress(run.id)

    assert progress == {
        "run_id": run.id,
        "job_id": job.id,
        "total": 3,
        "processed": 3,
        "percent": 100,
        "status": "completed",
        "done": True,
        "error": None,
    }


def test_constructor_validation(database, content) -> None:
    with pytest.raises(ValueError):
        make_coordinator(database, StubScoringClient({}), content, max_workers=0)
    with pytest.raises(ValueError):
        make_coordinator(database, StubScoringClient({}), content, scoring_timeout_seconds=0)
