"""Data models for employers, tracked jobs and incoming candidates."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum

from hunt.errors import InvalidTransitionError, MalformedCandidateError


def utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def parse_timestamp(value: str | None) -> datetime:
    """Naive UTC datetime from a stored timestamp; unparseable values sort first."""
    if not value:
        return datetime.min
    try:
        dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return datetime.min
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


class EmployerStatus(str, Enum):
    OK = "ok"
    YUCK = "yuck"
    NEVER = "never"


class JobStatus(str, Enum):
    NEW = "new"
    REVIEWING = "reviewing"
    APPLIED = "applied"
    REJECTED = "rejected"
    CLOSED = "closed"

    @property
    def is_terminal(self) -> bool:
        return not TRANSITIONS[self]


# new → reviewing → applied → {rejected, closed}
TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.NEW: frozenset({JobStatus.REVIEWING}),
    JobStatus.REVIEWING: frozenset({JobStatus.APPLIED}),
    JobStatus.APPLIED: frozenset({JobStatus.REJECTED, JobStatus.CLOSED}),
    JobStatus.REJECTED: frozenset(),
    JobStatus.CLOSED: frozenset(),
}


@dataclass
class Employer:
    id: int
    name: str
    status: EmployerStatus = EmployerStatus.OK
    domain: str | None = None
    notes: str | None = None
    # funding, controversies, ownership ... opaque to matching and scoring
    research: dict = field(default_factory=dict)
    created_at: str = field(default_factory=utc_now)
    updated_at: str = field(default_factory=utc_now)


@dataclass
class Job:
    id: int
    employer_id: int
    title: str
    employer_name: str = ""
    url: str = ""
    job_code: str | None = None
    pay_min: int | None = None
    pay_max: int | None = None
    status: JobStatus = JobStatus.NEW
    source: str = "manual"
    raw_text: str | None = None
    created_at: str = field(default_factory=utc_now)
    updated_at: str = field(default_factory=utc_now)


@dataclass
class CandidateRecord:
    """A posting handed over by an ingestion collaborator, not yet tracked."""

    title: str
    employer_name: str
    url: str = ""
    pay_min: int | None = None
    pay_max: int | None = None
    source: str = "manual"
    raw_text: str | None = None
    job_code: str | None = None
    created_at: str = field(default_factory=utc_now)

    @classmethod
    def from_dict(cls, data: dict) -> "CandidateRecord":
        """Build from a loaded mapping; unreadable pay raises MalformedCandidateError."""
        title = str(data.get("title") or "")
        return cls(
            title=title,
            employer_name=str(data.get("employer") or data.get("employer_name") or ""),
            url=str(data.get("url") or ""),
            pay_min=_pay(data.get("pay_min"), "pay_min", title),
            pay_max=_pay(data.get("pay_max"), "pay_max", title),
            source=str(data.get("source") or "manual"),
            raw_text=data.get("raw_text") or data.get("description") or None,
            job_code=data.get("job_code") or None,
            created_at=str(data.get("created_at") or utc_now()),
        )


@dataclass
class JobSnapshot:
    id: int
    job_id: int
    raw_text: str
    captured_at: str = field(default_factory=utc_now)


def _pay(value, name: str, title: str) -> int | None:
    """Whole dollars from 150000, 150000.0, "150,000", "$150k"."""
    if value is None or value == "":
        return None
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    text = str(value).strip().lower().replace(",", "").lstrip("$").strip()
    scale = 1
    if text.endswith("k"):
        text, scale = text[:-1].strip(), 1000
    try:
        return int(float(text) * scale)
    except (ValueError, OverflowError):
        raise MalformedCandidateError(name, title, value=str(value)) from None


def transition(job: Job, source: JobStatus, target: JobStatus) -> Job:
    """Return a copy of *job* moved from *source* to *target*.

    Fails when the job is not currently in *source* or when *target* does not
    follow *source* in the status graph. The input job is never modified.
    """
    source = JobStatus(source)
    target = JobStatus(target)
    if job.status != source or target not in TRANSITIONS[source]:
        raise InvalidTransitionError(job.id, job.status.value, source.value, target.value)
    return replace(job, status=target, updated_at=utc_now())
