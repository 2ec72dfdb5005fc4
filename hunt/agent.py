"""
Job tracking workflows.

Runs: validate → resolve against tracked jobs → insert / merge → report counts.
Cleanup passes fold duplicates into the job they duplicate and purge leftovers.
"""
from __future__ import annotations

from typing import Any, Sequence

from hunt.config import Settings, load_settings
from hunt.dedup import Accept, Duplicate, Merge, find_duplicates, merge_fields, resolve_batch
from hunt.extract import is_alert_noise, is_artifact_title
from hunt.log import get_logger
from hunt.models import CandidateRecord
from hunt.scorer import RankedJob, rank_jobs
from hunt.tracker import Tracker

log = get_logger(__name__)


def _batches(items: Sequence[CandidateRecord], size: int):
    for start in range(0, len(items), size):
        yield start, items[start:start + size]


def add_candidates(
    tracker: Tracker,
    candidates: Sequence[CandidateRecord],
    *,
    settings: Settings | None = None,
    dry_run: bool = False,
    skip_noise: bool = False,
) -> dict[str, Any]:
    """Resolve candidates against the store and apply Accept/Merge outcomes.

    Each batch is resolved and applied under the store lock, so the next batch
    (and any concurrent run) sees the jobs this one accepted. With *skip_noise*,
    link text and search pages are dropped before resolution.
    """
    settings = settings or load_settings()
    summary: dict[str, Any] = {
        "added": [], "merged": [], "duplicates": 0, "skipped": 0, "errors": [],
    }

    # error positions refer to the caller's list even when noise is dropped
    indexed = list(enumerate(candidates))
    if skip_noise:
        kept = []
        for position, cand in indexed:
            if is_alert_noise(cand):
                log.debug("Skipping noise: %r %s", cand.title, cand.url)
                summary["skipped"] += 1
            else:
                kept.append((position, cand))
        indexed = kept
    items = [cand for _, cand in indexed]

    for offset, batch in _batches(items, settings.matching.batch_size):
        with tracker.transaction():
            existing = tracker.list_jobs()
            for res in resolve_batch(batch, existing, settings.matching):
                position = indexed[offset + res.index][0]
                if res.error is not None:
                    summary["errors"].append((position, str(res.error)))
                    continue
                outcome = res.outcome
                if isinstance(outcome, Accept):
                    if dry_run:
                        summary["added"].append(None)
                        continue
                    job = tracker.insert_job(outcome.candidate)
                    summary["added"].append(job.id)
                elif isinstance(outcome, Merge):
                    log.info(
                        "Merging '%s' into #%d (%s): %s",
                        res.candidate.title, outcome.existing_id, outcome.rule.value,
                        ", ".join(sorted(outcome.fields)),
                    )
                    if not dry_run:
                        tracker.update_job(outcome.existing_id, **outcome.fields)
                    summary["merged"].append(outcome.existing_id)
                elif isinstance(outcome, Duplicate):
                    log.debug(
                        "Duplicate '%s' (%s) of %s", res.candidate.title, outcome.rule.value,
                        f"#{outcome.existing_id}" if outcome.existing_id is not None
                        else f"candidate {indexed[offset + outcome.batch_index][0]}",
                    )
                    summary["duplicates"] += 1

    log.info(
        "Add complete — added=%d, merged=%d, duplicates=%d, skipped=%d, errors=%d%s",
        len(summary["added"]), len(summary["merged"]), summary["duplicates"], summary["skipped"],
        len(summary["errors"]), " (dry run)" if dry_run else "",
    )
    return summary


def cleanup_duplicates(
    tracker: Tracker,
    *,
    settings: Settings | None = None,
    dry_run: bool = False,
) -> list:
    """Fold each duplicate's novel fields into the job it duplicates, then purge it."""
    settings = settings or load_settings()
    with tracker.transaction():
        jobs = {j.id: j for j in tracker.list_jobs()}
        pairs = find_duplicates(list(jobs.values()), settings.matching)
        for pair in pairs:
            log.info("%s [%s]", pair.message, pair.rule.value)
            if dry_run:
                continue
            kept = jobs[pair.kept_id]
            dup = jobs[pair.duplicate_id]
            fields = merge_fields(
                CandidateRecord(
                    title=dup.title, employer_name=dup.employer_name, url=dup.url,
                    pay_min=dup.pay_min, pay_max=dup.pay_max, source=dup.source,
                    raw_text=dup.raw_text, job_code=dup.job_code, created_at=dup.created_at,
                ),
                kept,
            )
            if fields:
                jobs[kept.id] = tracker.update_job(kept.id, **fields)
            tracker.delete_job(dup.id)
    return pairs


def cleanup_artifacts(tracker: Tracker, *, dry_run: bool = False) -> list[int]:
    """Purge jobs whose title is a leftover link or button label."""
    removed: list[int] = []
    with tracker.transaction():
        for job in tracker.list_jobs():
            if not is_artifact_title(job.title):
                continue
            log.info("Artifact #%d: %r", job.id, job.title)
            if not dry_run:
                tracker.delete_job(job.id)
            removed.append(job.id)
    return removed


def rank(
    tracker: Tracker,
    *,
    limit: int | None = None,
    include_closed: bool = False,
    settings: Settings | None = None,
) -> list[RankedJob]:
    settings = settings or load_settings()
    return rank_jobs(
        tracker.list_jobs(),
        tracker.employers_by_id(),
        limit=limit,
        include_closed=include_closed,
        settings=settings.scoring,
    )
