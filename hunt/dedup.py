"""Duplicate resolution for incoming postings.

A candidate is compared against tracked jobs with an ordered set of rules;
the first rule that fires decides:

  1. EXACT_URL    both canonical URLs present and equal (employer/title ignored)
  2. (gate)       different employer keys are never duplicates
  3. EXACT_TITLE  normalized titles equal
  4. SUBSTRING    one normalized title contains the other
  5. FUZZY        Jaro-Winkler similarity strictly above the threshold
  6. NO_MATCH

A duplicate that carries information the tracked job lacks becomes a Merge
instead of being dropped.
"""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Iterable, Optional, Sequence, Union

from hunt.config import MatchSettings
from hunt.errors import MalformedCandidateError
from hunt.extract import extract_job_code as extract_job_code_from_text
from hunt.log import get_logger
from hunt.models import CandidateRecord, Job, parse_timestamp
from hunt.normalize import employer_key, normalize
from hunt.similarity import contains, similarity
from hunt.urls import canonicalize, strip_tracking

log = get_logger(__name__)


class MatchRule(str, Enum):
    EXACT_URL = "exact_url"
    EXACT_TITLE = "exact_title"
    SUBSTRING = "substring"
    FUZZY = "fuzzy"
    NO_MATCH = "no_match"

    @property
    def is_duplicate(self) -> bool:
        return self is not MatchRule.NO_MATCH


PRECEDENCE: tuple[MatchRule, ...] = (
    MatchRule.EXACT_URL,
    MatchRule.EXACT_TITLE,
    MatchRule.SUBSTRING,
    MatchRule.FUZZY,
    MatchRule.NO_MATCH,
)
_RANK = {rule: i for i, rule in enumerate(PRECEDENCE)}

Record = Union[CandidateRecord, Job]


@dataclass(frozen=True)
class PostingKey:
    """Pre-normalized comparison view of a candidate or a tracked job."""

    url: str
    employer: str
    title: str

    @classmethod
    def of(cls, record: Record) -> "PostingKey":
        return cls(
            url=strip_tracking(record.url),
            employer=employer_key(record.employer_name),
            title=normalize(record.title),
        )


@dataclass(frozen=True)
class Accept:
    candidate: CandidateRecord


@dataclass(frozen=True)
class Duplicate:
    # None when the match is an earlier candidate of the same batch
    existing_id: Optional[int]
    rule: MatchRule
    batch_index: Optional[int] = None


@dataclass(frozen=True)
class Merge:
    existing_id: int
    rule: MatchRule
    fields: dict = field(default_factory=dict)


Outcome = Union[Accept, Duplicate, Merge]


@dataclass(frozen=True)
class Resolution:
    index: int
    candidate: CandidateRecord
    outcome: Optional[Outcome] = None
    error: Optional[MalformedCandidateError] = None


@dataclass(frozen=True)
class DuplicatePair:
    kept_id: int
    duplicate_id: int
    rule: MatchRule
    message: str


# ── Validation & preparation ─────────────────────────────────────────────


def validate_candidate(candidate: CandidateRecord) -> None:
    if not (candidate.title or "").strip():
        raise MalformedCandidateError("title")
    if not (candidate.employer_name or "").strip():
        raise MalformedCandidateError("employer name", candidate.title)
    if not normalize(candidate.title):
        raise MalformedCandidateError("title", candidate.title)


def prepare_candidate(candidate: CandidateRecord) -> CandidateRecord:
    """Canonical URL plus a derived job code (URL first, posting text second)."""
    canonical, code = canonicalize(candidate.url)
    job_code = candidate.job_code or code
    if not job_code and candidate.raw_text:
        job_code = extract_job_code_from_text(candidate.raw_text)
    return replace(
        candidate,
        title=candidate.title.strip(),
        employer_name=candidate.employer_name.strip(),
        url=canonical,
        job_code=job_code,
    )


# ── Rule evaluation ──────────────────────────────────────────────────────


def _title_rule(a: str, b: str, settings: MatchSettings) -> MatchRule:
    if a == b:
        return MatchRule.EXACT_TITLE
    if contains(a, b) and min(len(a), len(b)) >= settings.substring_min_length:
        return MatchRule.SUBSTRING
    if similarity(a, b) > settings.fuzzy_threshold:
        return MatchRule.FUZZY
    return MatchRule.NO_MATCH


def match_keys(a: PostingKey, b: PostingKey, settings: MatchSettings | None = None) -> MatchRule:
    settings = settings or MatchSettings()
    if a.url and b.url and a.url == b.url:
        return MatchRule.EXACT_URL
    if a.employer != b.employer:
        return MatchRule.NO_MATCH
    return _title_rule(a.title, b.title, settings)


def match_rule(candidate: Record, existing: Record, settings: MatchSettings | None = None) -> MatchRule:
    """The first duplicate rule that fires for this pair, or NO_MATCH."""
    return match_keys(PostingKey.of(candidate), PostingKey.of(existing), settings)


def is_duplicate(candidate: Record, existing: Record, settings: MatchSettings | None = None) -> bool:
    return match_rule(candidate, existing, settings).is_duplicate


def find_match(
    key: PostingKey,
    existing: Sequence[tuple[int, PostingKey]],
    settings: MatchSettings,
) -> Optional[tuple[int, MatchRule]]:
    """Best (strongest rule, then earliest position) match among *existing*.

    The URL rule is checked across the whole set before any title work.
    """
    if key.url:
        for ident, other in existing:
            if other.url == key.url:
                return ident, MatchRule.EXACT_URL

    best: Optional[tuple[int, MatchRule]] = None
    for ident, other in existing:
        if other.employer != key.employer:
            continue
        rule = _title_rule(key.title, other.title, settings)
        if rule is MatchRule.EXACT_TITLE:
            return ident, rule
        if rule is MatchRule.NO_MATCH:
            continue
        if best is None or _RANK[rule] < _RANK[best[1]]:
            best = (ident, rule)
    return best


# ── Merge ────────────────────────────────────────────────────────────────


def _is_newer(candidate: CandidateRecord, existing: Record) -> bool:
    return parse_timestamp(candidate.created_at) >= parse_timestamp(existing.created_at)


def _merge_pay(candidate: CandidateRecord, existing: Record, newer: bool) -> dict:
    new = (candidate.pay_min, candidate.pay_max)
    old = (existing.pay_min, existing.pay_max)
    if new == (None, None) or new == old:
        return {}
    if old == (None, None) or newer:
        # the newer range wins; a side it leaves blank keeps the tracked value
        lo = new[0] if new[0] is not None else old[0]
        hi = new[1] if new[1] is not None else old[1]
        if lo is not None and hi is not None and lo > hi:
            lo, hi = new
    else:
        # an older candidate only fills gaps
        lo = old[0] if old[0] is not None else new[0]
        hi = old[1] if old[1] is not None else new[1]
        if lo is not None and hi is not None and lo > hi:
            lo, hi = old
    out = {}
    if lo != old[0]:
        out["pay_min"] = lo
    if hi != old[1]:
        out["pay_max"] = hi
    return out


def merge_fields(candidate: CandidateRecord, existing: Record) -> dict:
    """Fields to write onto *existing* so nothing only the candidate knows is lost."""
    newer = _is_newer(candidate, existing)
    fields = _merge_pay(candidate, existing, newer)
    for name in ("raw_text", "url", "job_code"):
        new = getattr(candidate, name) or None
        old = getattr(existing, name) or None
        if new is None or new == old:
            continue
        if old is None or newer:
            fields[name] = new
    return fields


def _outcome(candidate: CandidateRecord, existing: Record, ident: int, rule: MatchRule) -> Outcome:
    fields = merge_fields(candidate, existing)
    if fields:
        return Merge(existing_id=ident, rule=rule, fields=fields)
    return Duplicate(existing_id=ident, rule=rule)


# ── Resolution ───────────────────────────────────────────────────────────


def _existing_keys(existing: Iterable[Job]) -> list[tuple[int, PostingKey]]:
    return [(job.id, PostingKey.of(job)) for job in existing]


def resolve(
    candidate: CandidateRecord,
    existing: Sequence[Job],
    settings: MatchSettings | None = None,
) -> Outcome:
    """Accept, Duplicate or Merge for one candidate against tracked jobs."""
    settings = settings or MatchSettings()
    validate_candidate(candidate)
    prepared = prepare_candidate(candidate)
    found = find_match(PostingKey.of(prepared), _existing_keys(existing), settings)
    if found is None:
        return Accept(prepared)
    ident, rule = found
    by_id = {job.id: job for job in existing}
    return _outcome(prepared, by_id[ident], ident, rule)


def resolve_batch(
    candidates: Sequence[CandidateRecord],
    existing: Sequence[Job],
    settings: MatchSettings | None = None,
) -> list[Resolution]:
    """Resolve many candidates; results come back in input order.

    Matching against *existing* is read-only and may fan out over a thread
    pool. Candidates that duplicate each other are then settled strictly in
    input order: the earliest is accepted and later ones fold their novel
    fields into it, so the same input always accepts the same records.
    """
    settings = settings or MatchSettings()
    results: list[Resolution] = []
    prepared: dict[int, CandidateRecord] = {}
    for i, cand in enumerate(candidates):
        try:
            validate_candidate(cand)
        except MalformedCandidateError as exc:
            log.warning("Rejected candidate #%d: %s", i, exc)
            results.append(Resolution(index=i, candidate=cand, error=exc))
            continue
        prepared[i] = prepare_candidate(cand)
        results.append(Resolution(index=i, candidate=cand))

    existing_keys = _existing_keys(existing)
    by_id = {job.id: job for job in existing}
    order = sorted(prepared)
    keys = {i: PostingKey.of(prepared[i]) for i in order}

    def _against_existing(i: int) -> Optional[tuple[int, MatchRule]]:
        return find_match(keys[i], existing_keys, settings)

    if settings.workers > 1 and len(order) > 1:
        with ThreadPoolExecutor(max_workers=settings.workers) as pool:
            matches = dict(zip(order, pool.map(_against_existing, order)))
    else:
        matches = {i: _against_existing(i) for i in order}

    # tracked jobs as they will look once this batch's merges are applied
    current: dict[int, Job] = dict(by_id)
    merged: dict[int, PostingKey] = {}
    accepted: dict[int, PostingKey] = {}
    outcomes: dict[int, Outcome] = {}
    for i in order:
        cand = prepared[i]
        # a merge earlier in the batch may have given a tracked job the URL this one carries
        found = matches[i] or find_match(keys[i], list(merged.items()), settings)
        if found is not None:
            ident, rule = found
            outcome = _outcome(cand, current[ident], ident, rule)
            if isinstance(outcome, Merge):
                current[ident] = replace(current[ident], **outcome.fields)
                merged[ident] = PostingKey.of(current[ident])
            outcomes[i] = outcome
            continue
        earlier = find_match(keys[i], list(accepted.items()), settings)
        if earlier is None:
            outcomes[i] = Accept(cand)
            accepted[i] = keys[i]
            continue
        j, rule = earlier
        first = outcomes[j].candidate  # type: ignore[union-attr]
        fields = merge_fields(cand, first)
        if fields:
            outcomes[j] = Accept(replace(first, **fields))
            accepted[j] = PostingKey.of(outcomes[j].candidate)  # type: ignore[union-attr]
        outcomes[i] = Duplicate(existing_id=None, rule=rule, batch_index=j)

    resolved = [replace(r, outcome=outcomes[r.index]) if r.index in outcomes else r for r in results]
    log.debug(
        "Resolved %d candidate(s) against %d tracked job(s)",
        len(candidates), len(existing),
    )
    return resolved


def find_duplicates(jobs: Sequence[Job], settings: MatchSettings | None = None) -> list[DuplicatePair]:
    """Pair each tracked job with the earliest-created job it duplicates."""
    settings = settings or MatchSettings()
    ordered = sorted(jobs, key=lambda j: (parse_timestamp(j.created_at), j.id))
    kept: list[tuple[int, PostingKey]] = []
    titles: dict[int, str] = {}
    pairs: list[DuplicatePair] = []
    for job in ordered:
        key = PostingKey.of(job)
        found = find_match(key, kept, settings)
        if found is None:
            kept.append((job.id, key))
            titles[job.id] = job.title
            continue
        kept_id, rule = found
        pairs.append(DuplicatePair(
            kept_id=kept_id,
            duplicate_id=job.id,
            rule=rule,
            message=f"Job #{job.id} ('{job.title}') duplicates job #{kept_id} ('{titles[kept_id]}')",
        ))
    return pairs
