"""Posting URL canonicalization and job-code extraction.

Tracking redirects from alert emails and job boards append query strings and
fragments that change per send; the canonical form keeps scheme, host and path
only. A site-specific job code is pulled out of the path when a known shape
matches, most specific pattern first.
"""
from __future__ import annotations

import re
from typing import Callable, Optional
from urllib.parse import urlsplit, urlunsplit

# Path segments that introduce a numeric posting id on career sites.
LISTING_SEGMENTS: tuple[str, ...] = (
    "jobs", "job", "careers", "career", "positions", "position",
    "openings", "opening", "postings", "posting", "vacancies", "vacancy",
    "job-detail", "jobdetail", "requisitions",
)

# Hosts whose second-level label is not the employer or board name.
_GENERIC_SUBDOMAINS = frozenset({"www", "jobs", "careers", "apply", "boards", "job-boards"})

_LINKEDIN_RE = re.compile(r"/(?:comm/)?jobs?/view/(?:[^/]*?-)?(\d+)(?:/|$)")
_GREENHOUSE_RE = re.compile(r"/jobs/(\d+)(?:/|$)")
_REQUISITION_RE = re.compile(r"(?<![A-Za-z0-9])([A-Z]{1,4}-?\d{4,})(?![0-9])")


def _site_prefix(host: str) -> str:
    labels = [p for p in host.split(".") if p]
    if len(labels) >= 2:
        return labels[-2]
    return labels[0] if labels else "site"


def _linkedin(host: str, path: str) -> Optional[str]:
    if not host.endswith("linkedin.com"):
        return None
    m = _LINKEDIN_RE.search(path)
    return f"linkedin-{m.group(1)}" if m else None


def _greenhouse(host: str, path: str) -> Optional[str]:
    if not host.endswith("greenhouse.io"):
        return None
    m = _GREENHOUSE_RE.search(path)
    return f"greenhouse-{m.group(1)}" if m else None


def _listing_segment(host: str, path: str) -> Optional[str]:
    segments = [s for s in path.split("/") if s]
    for prev, seg in zip(segments, segments[1:]):
        if prev.lower() in LISTING_SEGMENTS and seg.isdigit():
            return f"{_site_prefix(host)}-{seg}"
    return None


def _requisition(host: str, path: str) -> Optional[str]:
    m = _REQUISITION_RE.search(path)
    return m.group(1) if m else None


# Ordered most specific first; the first pattern that yields a code wins.
CODE_PATTERNS: tuple[tuple[str, Callable[[str, str], Optional[str]]], ...] = (
    ("linkedin", _linkedin),
    ("greenhouse", _greenhouse),
    ("listing-segment", _listing_segment),
    ("requisition", _requisition),
)


def strip_tracking(url: str | None) -> str:
    """Drop everything from the first '?' or '#', normalize host case and trailing slash."""
    raw = (url or "").strip()
    if not raw:
        return ""
    cut = re.split(r"[?#]", raw, maxsplit=1)[0]
    try:
        parts = urlsplit(cut)
    except ValueError:
        # unbalanced IPv6 brackets and similar junk from scraped text
        return cut
    if not parts.netloc:
        # scheme-less "ACME.com/jobs/1/": lowercase the host part only
        host, sep, path = cut.partition("/")
        path = path.rstrip("/")
        return (host.lower() + (sep + path if path else "")) or cut
    path = parts.path
    if len(path) > 1:
        path = path.rstrip("/")
    return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), path, "", ""))


def extract_job_code(canonical_url: str) -> Optional[str]:
    if not canonical_url:
        return None
    try:
        parts = urlsplit(canonical_url)
        if not parts.netloc:
            # scheme-less "acme.com/jobs/123"
            parts = urlsplit("//" + canonical_url.lstrip("/"))
        host = (parts.hostname or "").lower()
    except ValueError:
        return None
    host_labels = host.split(".")
    while len(host_labels) > 2 and host_labels[0] in _GENERIC_SUBDOMAINS:
        host_labels = host_labels[1:]
    host = ".".join(host_labels)
    path = parts.path
    for _, pattern in CODE_PATTERNS:
        code = pattern(host, path)
        if code:
            return code
    return None


def canonicalize(url: str | None) -> tuple[str, Optional[str]]:
    """Return ``(canonical_url, job_code_or_None)``. Never raises."""
    canonical = strip_tracking(url)
    return canonical, extract_job_code(canonical)


def is_search_link(url: str) -> bool:
    """True for board search/alert pages that alert emails link alongside real postings."""
    return "/jobs/search" in url or "/search?" in url or "/jobs/alerts" in url
