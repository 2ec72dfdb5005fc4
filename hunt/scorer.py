"""Score and rank tracked jobs by desirability."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Sequence

from hunt.config import ScoreSettings
from hunt.log import get_logger
from hunt.models import Employer, EmployerStatus, Job, JobStatus

log = get_logger(__name__)

BASE_SCORE = 50
MAX_PAY_BONUS = 30

EMPLOYER_PENALTIES: dict[EmployerStatus, int] = {
    EmployerStatus.OK: 0,
    EmployerStatus.YUCK: -20,
    EmployerStatus.NEVER: -100,
}

STATUS_BONUSES: dict[JobStatus, int] = {
    JobStatus.REVIEWING: 10,
    JobStatus.NEW: 5,
}


@dataclass
class RankedJob:
    job: Job
    employer: Employer
    score: int


def _stated_pay(job: Job) -> int | None:
    stated = [p for p in (job.pay_min, job.pay_max) if p is not None]
    return max(stated) if stated else None


def pay_bonus(job: Job, pay_ceiling: int) -> int:
    """0–30, linear in the highest stated pay up to *pay_ceiling*."""
    pay = _stated_pay(job)
    if pay is None or pay <= 0:
        return 0
    return round(MAX_PAY_BONUS * min(pay, pay_ceiling) / pay_ceiling)


def score(job: Job, employer: Employer, settings: ScoreSettings | None = None) -> int:
    settings = settings or ScoreSettings()
    total = BASE_SCORE
    total += pay_bonus(job, settings.pay_ceiling)                 # 0 – 30
    total += EMPLOYER_PENALTIES[EmployerStatus(employer.status)]   # 0 / -20 / -100
    total += STATUS_BONUSES.get(JobStatus(job.status), 0)          # 0 / 5 / 10
    return total


def rank_jobs(
    jobs: Sequence[Job],
    employers: Mapping[int, Employer],
    *,
    limit: int | None = None,
    include_closed: bool = False,
    settings: ScoreSettings | None = None,
) -> list[RankedJob]:
    """Jobs sorted by score, highest first; equal scores keep id order."""
    ranked: list[RankedJob] = []
    for job in jobs:
        if not include_closed and JobStatus(job.status).is_terminal:
            continue
        employer = employers[job.employer_id]
        ranked.append(RankedJob(job=job, employer=employer, score=score(job, employer, settings)))
    ranked.sort(key=lambda r: (-r.score, r.job.id))
    if limit is not None:
        ranked = ranked[:limit]
    log.info("Ranked %d of %d job(s)", len(ranked), len(jobs))
    return ranked
