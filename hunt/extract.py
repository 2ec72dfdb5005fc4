"""Pull structured fields out of pasted or scraped posting text."""
from __future__ import annotations

import re

from hunt.models import CandidateRecord
from hunt.urls import is_search_link

# Labels that introduce a requisition id in posting text, e.g. "Job ID: 12345".
JOB_CODE_LABELS: list[str] = [
    "job id", "job code", "requisition id", "req id", "req#", "req #",
    "job #", "job number", "job no", "reference", "ref",
]

# Exact link texts that alert emails and career pages use for navigation.
NAVIGATION_TEXTS: list[str] = [
    "search for jobs", "see all jobs", "view all", "search other jobs", "jobs",
]

# Short titles containing these are buttons or links, not roles.
ARTIFACT_PHRASES: list[str] = [
    "view this job", "view job", "apply now", "see more", "view all",
    "click here", "learn more", "read more", "get started", "sign in",
    "log in", "unsubscribe",
]

_MAX_TITLE_LEN = 100
_MIN_TITLE_LEN = 10

_CODE_LABEL_RE = re.compile(
    r"(?i)\b(?:" + "|".join(re.escape(l) for l in JOB_CODE_LABELS) + r")\s*:\s*([A-Za-z0-9][A-Za-z0-9_/-]{0,49})"
)
_LINKEDIN_VIEW_RE = re.compile(r"/jobs?/view/(\d+)")
_JR_RE = re.compile(r"\bJR-?[A-Za-z0-9-]{4,20}\b")
_PAY_RE = re.compile(r"\$\s?(\d[\d,]*(?:\.\d+)?)\s*(k)?", re.IGNORECASE)
# the company runs to a line end, comma, bar or a spaced dash; "Coca-Cola" stays whole
_AT_RE = re.compile(r"\s(?:at|@)\s+(.+?)(?=\s+[-–|·]\s|[\n,|·]|$)")


def extract_title(text: str) -> str:
    """First non-empty line, truncated for display."""
    for line in (text or "").splitlines():
        line = line.strip()
        if line:
            if len(line) > _MAX_TITLE_LEN:
                return line[: _MAX_TITLE_LEN - 3] + "..."
            return line
    return ""


def extract_employer(text: str) -> str | None:
    """Employer from an "... at Company" phrase on the first lines, if any."""
    m = _AT_RE.search(text or "")
    if not m:
        return None
    company = m.group(1).strip()
    if company and len(company) < 50:
        return company
    return None


def extract_job_code(text: str) -> str | None:
    """Requisition id from labelled text, a LinkedIn view path, or a JR-style token."""
    if not text:
        return None
    m = _CODE_LABEL_RE.search(text)
    if m:
        return m.group(1)
    m = _LINKEDIN_VIEW_RE.search(text)
    if m:
        return f"linkedin-{m.group(1)}"
    m = _JR_RE.search(text)
    if m:
        return m.group(0)
    return None


def _pay_value(number: str, has_k: bool) -> int | None:
    digits = number.replace(",", "")
    try:
        value = float(digits)
    except ValueError:
        return None
    # "$150" in a salary line means thousands
    if has_k or value < 1000:
        value *= 1000
    return int(value)


def extract_pay_range(text: str) -> tuple[int | None, int | None]:
    """First two dollar amounts as (min, max); "$150k - $200k", "$150,000"."""
    values: list[int] = []
    for m in _PAY_RE.finditer(text or ""):
        v = _pay_value(m.group(1), bool(m.group(2)))
        if v is not None:
            values.append(v)
        if len(values) == 2:
            break
    if not values:
        return None, None
    if len(values) == 1:
        return values[0], None
    lo, hi = values
    return (hi, lo) if lo > hi else (lo, hi)


def is_navigation_artifact(text: str) -> bool:
    """Link text from an alert email that is not a posting title."""
    stripped = (text or "").strip()
    low = stripped.lower()
    if len(stripped) < _MIN_TITLE_LEN:
        return True
    if low in NAVIGATION_TEXTS:
        return True
    if low.startswith(("jobs similar to", "jobs in ", "manage job")):
        return True
    if "unsubscribe" in low or "privacy" in low:
        return True
    # "Engineering Manager jobs" links to a search page
    return low.endswith(" jobs")


def is_artifact_title(title: str) -> bool:
    """A stored title that is really a leftover button or link label."""
    low = (title or "").strip().lower()
    if len(low) < 5:
        return True
    return len(low) < 50 and any(p in low for p in ARTIFACT_PHRASES)


def candidate_from_text(
    text: str,
    *,
    employer: str | None = None,
    url: str = "",
    source: str = "manual",
) -> CandidateRecord:
    """Build a candidate from a pasted posting; explicit arguments win over parsing."""
    pay_min, pay_max = extract_pay_range(text)
    first_line = extract_title(text)
    return CandidateRecord(
        title=first_line,
        employer_name=employer or extract_employer(first_line) or "",
        url=url,
        pay_min=pay_min,
        pay_max=pay_max,
        source=source,
        raw_text=text,
        job_code=extract_job_code(text),
    )


def is_alert_noise(candidate: CandidateRecord) -> bool:
    """Link text or a search page picked up alongside real postings."""
    return is_navigation_artifact(candidate.title) or (bool(candidate.url) and is_search_link(candidate.url))
