"""Track employers and jobs in structured tables (CSV) with file locking."""
from __future__ import annotations

import csv
import fcntl
import json
from contextlib import contextmanager
from dataclasses import asdict, replace
from pathlib import Path
from typing import Iterator

from hunt.config import DATA_DIR
from hunt.errors import UnknownEmployerError, UnknownJobError
from hunt.log import get_logger
from hunt.models import (
    CandidateRecord,
    Employer,
    EmployerStatus,
    Job,
    JobSnapshot,
    JobStatus,
    transition,
    utc_now,
)
from hunt.normalize import employer_key

log = get_logger(__name__)

EMPLOYER_HEADERS: list[str] = [
    "id", "name", "status", "domain", "notes", "research",
    "created_at", "updated_at",
]
JOB_HEADERS: list[str] = [
    "id", "employer_id", "title", "url", "job_code", "pay_min", "pay_max",
    "status", "source", "raw_text", "created_at", "updated_at",
]
SNAPSHOT_HEADERS: list[str] = ["id", "job_id", "raw_text", "captured_at"]
# High-water id per table, so ids of purged rows are never handed out again.
SEQUENCE_HEADERS: list[str] = ["table", "last_id"]

# Fields a merge or refetch may overwrite on a tracked job.
UPDATABLE_JOB_FIELDS = frozenset({"title", "url", "job_code", "pay_min", "pay_max", "raw_text", "source"})


def _lock(f, exclusive: bool = True) -> None:
    """Advisory file lock (Unix fcntl)."""
    try:
        op = fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH
        fcntl.flock(f.fileno(), op)
    except (OSError, AttributeError):
        pass


def _unlock(f) -> None:
    try:
        fcntl.flock(f.fileno(), fcntl.LOCK_UN)
    except (OSError, AttributeError):
        pass


def _opt_int(value: str) -> int | None:
    return int(value) if value not in ("", None) else None


def _opt_str(value: str) -> str | None:
    return value if value else None


def _cell(value) -> str:
    if value is None:
        return ""
    if isinstance(value, (EmployerStatus, JobStatus)):
        return value.value
    if isinstance(value, dict):
        return json.dumps(value, sort_keys=True)
    return str(value)


class Tracker:
    """CSV-backed record store: the sole owner of employers, jobs and snapshots."""

    def __init__(self, data_dir: Path | None = None) -> None:
        self.data_dir = Path(data_dir or DATA_DIR)
        self.employers_csv = self.data_dir / "employers.csv"
        self.jobs_csv = self.data_dir / "jobs.csv"
        self.snapshots_csv = self.data_dir / "job_snapshots.csv"
        self.sequences_csv = self.data_dir / "sequences.csv"
        self.lock_path = self.data_dir / ".hunt.lock"
        # nesting depth of transaction(); flock is not re-entrant across file handles
        self._depth = 0

    # ── table plumbing ──────────────────────────────────────────────────

    def ensure_tracker(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        for path, headers in (
            (self.employers_csv, EMPLOYER_HEADERS),
            (self.jobs_csv, JOB_HEADERS),
            (self.snapshots_csv, SNAPSHOT_HEADERS),
            (self.sequences_csv, SEQUENCE_HEADERS),
        ):
            if not path.exists():
                with open(path, "w", newline="", encoding="utf-8") as f:
                    _lock(f)
                    csv.writer(f).writerow(headers)
                    _unlock(f)
                log.info("Created table → %s", path.name)

    def _read(self, path: Path) -> list[dict[str, str]]:
        self.ensure_tracker()
        with open(path, "r", newline="", encoding="utf-8") as f:
            _lock(f, exclusive=False)
            rows = list(csv.DictReader(f))
            _unlock(f)
        return rows

    def _write(self, path: Path, headers: list[str], rows: list[dict[str, str]]) -> None:
        with open(path, "w", newline="", encoding="utf-8") as f:
            _lock(f)
            w = csv.DictWriter(f, fieldnames=headers)
            w.writeheader()
            w.writerows(rows)
            _unlock(f)

    def _append(self, path: Path, headers: list[str], row: dict[str, str]) -> None:
        self.ensure_tracker()
        with open(path, "a", newline="", encoding="utf-8") as f:
            _lock(f)
            csv.DictWriter(f, fieldnames=headers).writerow(row)
            _unlock(f)

    def _next_id(self, table: str, rows: list[dict[str, str]]) -> int:
        """Allocate the next id for *table*. Call with the transaction held."""
        sequences = self._read(self.sequences_csv)
        last = max((int(r["id"]) for r in rows), default=0)
        for r in sequences:
            if r["table"] == table:
                last = max(last, int(r["last_id"]))
        others = [r for r in sequences if r["table"] != table]
        self._write(self.sequences_csv, SEQUENCE_HEADERS, others + [{"table": table, "last_id": str(last + 1)}])
        return last + 1

    @contextmanager
    def transaction(self) -> Iterator["Tracker"]:
        """Hold the store-wide lock so a read-resolve-write pass sees no interleaving writer.

        Every write method takes it too; nested use on the same Tracker is a no-op.
        """
        if self._depth:
            self._depth += 1
            try:
                yield self
            finally:
                self._depth -= 1
            return
        self.data_dir.mkdir(parents=True, exist_ok=True)
        with open(self.lock_path, "a+", encoding="utf-8") as f:
            _lock(f)
            self._depth = 1
            try:
                yield self
            finally:
                self._depth = 0
                _unlock(f)

    # ── employers ───────────────────────────────────────────────────────

    @staticmethod
    def _row_to_employer(row: dict[str, str]) -> Employer:
        return Employer(
            id=int(row["id"]),
            name=row["name"],
            status=EmployerStatus(row["status"] or "ok"),
            domain=_opt_str(row.get("domain", "")),
            notes=_opt_str(row.get("notes", "")),
            research=json.loads(row["research"]) if row.get("research") else {},
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def list_employers(self, status: EmployerStatus | None = None) -> list[Employer]:
        employers = [self._row_to_employer(r) for r in self._read(self.employers_csv)]
        if status is not None:
            employers = [e for e in employers if e.status == EmployerStatus(status)]
        return employers

    def employers_by_id(self) -> dict[int, Employer]:
        return {e.id: e for e in self.list_employers()}

    def get_employer_by_name(self, name: str) -> Employer | None:
        key = employer_key(name)
        for employer in self.list_employers():
            if employer_key(employer.name) == key:
                return employer
        return None

    def get_or_create_employer(self, name: str) -> Employer:
        with self.transaction():
            existing = self.get_employer_by_name(name)
            if existing is not None:
                return existing
            rows = self._read(self.employers_csv)
            employer = Employer(id=self._next_id("employers", rows), name=name.strip())
            self._append(self.employers_csv, EMPLOYER_HEADERS, {k: _cell(v) for k, v in asdict(employer).items()})
        log.info("New employer: %s (#%d)", employer.name, employer.id)
        return employer

    def _update_employer(self, name: str, **changes) -> Employer:
        key = employer_key(name)
        with self.transaction():
            rows = self._read(self.employers_csv)
            for i, row in enumerate(rows):
                if employer_key(row["name"]) == key:
                    updated = replace(self._row_to_employer(row), updated_at=utc_now(), **changes)
                    rows[i] = {k: _cell(v) for k, v in asdict(updated).items()}
                    self._write(self.employers_csv, EMPLOYER_HEADERS, rows)
                    return updated
        raise UnknownEmployerError(name)

    def set_employer_status(self, name: str, status: EmployerStatus) -> Employer:
        employer = self._update_employer(name, status=EmployerStatus(status))
        log.info("Employer %s → %s", employer.name, employer.status.value)
        return employer

    def update_employer_research(self, name: str, **research) -> Employer:
        """Merge opaque research notes (funding, controversies, ownership ...)."""
        with self.transaction():
            current = self.get_employer_by_name(name)
            if current is None:
                raise UnknownEmployerError(name)
            merged = {**current.research, **{k: v for k, v in research.items() if v is not None}}
            return self._update_employer(name, research=merged)

    # ── jobs ────────────────────────────────────────────────────────────

    @staticmethod
    def _row_to_job(row: dict[str, str], names: dict[int, str]) -> Job:
        employer_id = int(row["employer_id"])
        return Job(
            id=int(row["id"]),
            employer_id=employer_id,
            employer_name=names.get(employer_id, ""),
            title=row["title"],
            url=row.get("url", ""),
            job_code=_opt_str(row.get("job_code", "")),
            pay_min=_opt_int(row.get("pay_min", "")),
            pay_max=_opt_int(row.get("pay_max", "")),
            status=JobStatus(row["status"] or "new"),
            source=row.get("source") or "manual",
            raw_text=_opt_str(row.get("raw_text", "")),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    @staticmethod
    def _job_row(job: Job) -> dict[str, str]:
        data = asdict(job)
        return {k: _cell(data[k]) for k in JOB_HEADERS}

    def list_jobs(
        self,
        employer: str | None = None,
        status: JobStatus | None = None,
    ) -> list[Job]:
        """All tracked jobs in id order, optionally filtered by employer name or status."""
        names = {e.id: e.name for e in self.list_employers()}
        jobs = [self._row_to_job(r, names) for r in self._read(self.jobs_csv)]
        if employer is not None:
            key = employer_key(employer)
            jobs = [j for j in jobs if employer_key(j.employer_name) == key]
        if status is not None:
            jobs = [j for j in jobs if j.status == JobStatus(status)]
        return sorted(jobs, key=lambda j: j.id)

    def get_job(self, job_id: int) -> Job:
        for job in self.list_jobs():
            if job.id == job_id:
                return job
        raise UnknownJobError(job_id)

    def insert_job(self, candidate: CandidateRecord) -> Job:
        """Promote an accepted candidate to a tracked job with a fresh id."""
        with self.transaction():
            employer = self.get_or_create_employer(candidate.employer_name)
            rows = self._read(self.jobs_csv)
            now = utc_now()
            job = Job(
                id=self._next_id("jobs", rows),
                employer_id=employer.id,
                employer_name=employer.name,
                title=candidate.title,
                url=candidate.url,
                job_code=candidate.job_code,
                pay_min=candidate.pay_min,
                pay_max=candidate.pay_max,
                status=JobStatus.NEW,
                source=candidate.source,
                raw_text=candidate.raw_text,
                created_at=candidate.created_at or now,
                updated_at=now,
            )
            self._append(self.jobs_csv, JOB_HEADERS, self._job_row(job))
            if job.raw_text:
                self.add_snapshot(job.id, job.raw_text)
        log.debug("Tracked: %s @ %s (#%d)", job.title, employer.name, job.id)
        return job

    def _replace_job(self, job_id: int, build) -> Job:
        with self.transaction():
            names = {e.id: e.name for e in self.list_employers()}
            rows = self._read(self.jobs_csv)
            for i, row in enumerate(rows):
                if int(row["id"]) == job_id:
                    job = build(self._row_to_job(row, names))
                    rows[i] = self._job_row(job)
                    self._write(self.jobs_csv, JOB_HEADERS, rows)
                    return job
        raise UnknownJobError(job_id)

    def update_job(self, job_id: int, **fields) -> Job:
        """Overwrite merge-able fields; a new description is also kept as a snapshot."""
        unknown = set(fields) - UPDATABLE_JOB_FIELDS
        if unknown:
            raise ValueError(f"Fields not updatable: {', '.join(sorted(unknown))}")
        with self.transaction():
            job = self._replace_job(job_id, lambda j: replace(j, updated_at=utc_now(), **fields))
            if fields.get("raw_text"):
                self.add_snapshot(job_id, fields["raw_text"])
        log.debug("Updated #%d: %s", job_id, ", ".join(sorted(fields)))
        return job

    def set_status(self, job_id: int, source: JobStatus, target: JobStatus) -> Job:
        """Move a job along the status graph; fails unless it is currently *source*."""
        job = self._replace_job(job_id, lambda j: transition(j, source, target))
        log.info("Job #%d: %s → %s", job_id, JobStatus(source).value, job.status.value)
        return job

    def delete_job(self, job_id: int) -> None:
        """Purge a job and its snapshots."""
        with self.transaction():
            rows = self._read(self.jobs_csv)
            kept = [r for r in rows if int(r["id"]) != job_id]
            if len(kept) == len(rows):
                raise UnknownJobError(job_id)
            self._write(self.jobs_csv, JOB_HEADERS, kept)
            snaps = [r for r in self._read(self.snapshots_csv) if int(r["job_id"]) != job_id]
            self._write(self.snapshots_csv, SNAPSHOT_HEADERS, snaps)
        log.debug("Deleted job #%d", job_id)

    # ── snapshots ───────────────────────────────────────────────────────

    def add_snapshot(self, job_id: int, raw_text: str) -> JobSnapshot:
        with self.transaction():
            rows = self._read(self.snapshots_csv)
            snap = JobSnapshot(id=self._next_id("job_snapshots", rows), job_id=job_id, raw_text=raw_text)
            self._append(self.snapshots_csv, SNAPSHOT_HEADERS, {k: _cell(v) for k, v in asdict(snap).items()})
        return snap

    def list_snapshots(self, job_id: int) -> list[JobSnapshot]:
        return [
            JobSnapshot(
                id=int(r["id"]),
                job_id=int(r["job_id"]),
                raw_text=r["raw_text"],
                captured_at=r["captured_at"],
            )
            for r in self._read(self.snapshots_csv)
            if int(r["job_id"]) == job_id
        ]
