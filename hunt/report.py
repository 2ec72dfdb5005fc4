"""Markdown report of ranked jobs."""
from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from urllib.parse import urlparse

from hunt.config import REPORTS_DIR
from hunt.log import get_logger
from hunt.models import EmployerStatus
from hunt.scorer import RankedJob

log = get_logger(__name__)

_EMPLOYER_BADGES: dict[EmployerStatus, str] = {
    EmployerStatus.OK: "",
    EmployerStatus.YUCK: " ⚠️",
    EmployerStatus.NEVER: " ⛔",
}


def _short_url_label(url: str) -> str:
    host = urlparse(url).hostname or ""
    parts = host.replace("www.", "").split(".")
    return parts[0].capitalize() if parts and parts[0] else "Link"


def format_pay(pay_min: int | None, pay_max: int | None) -> str:
    if pay_min is None and pay_max is None:
        return "—"
    if pay_min is not None and pay_max is not None:
        return f"${pay_min:,} – ${pay_max:,}"
    return f"${(pay_min if pay_min is not None else pay_max):,}"


def _clip(text: str, width: int) -> str:
    return text[:width] + ("…" if len(text) > width else "")


def build_ranking_report(ranked: list[RankedJob], *, top: int = 25) -> str:
    date = datetime.now(timezone.utc).strftime("%Y-%m-%d")
    lines: list[str] = [f"# Job Ranking — {date}", ""]
    lines.append(f"**{len(ranked)}** open jobs ranked")
    lines.append("")

    shown = ranked[:top]
    if not shown:
        lines.append("_Nothing tracked yet._")
        return "\n".join(lines)

    lines.append("| # | Score | Role | Employer | Pay | Status | Link |")
    lines.append("|--:|------:|------|----------|-----|--------|------|")
    for i, r in enumerate(shown, 1):
        job = r.job
        badge = _EMPLOYER_BADGES[EmployerStatus(r.employer.status)]
        link = f"[{_short_url_label(job.url)}]({job.url})" if job.url else "—"
        lines.append(
            f"| {i} | {r.score} | {_clip(job.title, 40)} (#{job.id}) | "
            f"{_clip(r.employer.name, 22)}{badge} | {format_pay(job.pay_min, job.pay_max)} | "
            f"{job.status.value} | {link} |"
        )
    lines.append("")

    avoided = [r for r in ranked if r.employer.status != EmployerStatus.OK]
    if avoided:
        lines.append("## Flagged employers")
        lines.append("")
        for r in avoided[:10]:
            lines.append(f"- **{r.employer.name}** — _{r.employer.status.value}_ — {r.job.title}")
        lines.append("")

    log.info("Built ranking report: %d jobs", len(ranked))
    return "\n".join(lines)


def write_report(content: str, reports_dir: Path | None = None) -> Path:
    reports_dir = reports_dir or REPORTS_DIR
    reports_dir.mkdir(parents=True, exist_ok=True)
    date = datetime.now(timezone.utc).strftime("%Y-%m-%d")
    path = reports_dir / f"ranking_{date}.md"
    path.write_text(content, encoding="utf-8")
    log.info("Report written → %s", path)
    return path
