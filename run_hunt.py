#!/usr/bin/env python3
"""Entry point for the job tracker.

Examples:
    python run_hunt.py add "Senior DevOps Engineer" --employer "Acme Corp" --url https://acme.com/jobs/123
    python run_hunt.py import alerts.yaml
    python run_hunt.py rank --limit 20 --report
    python run_hunt.py status 7 new reviewing
    python run_hunt.py employer never "Initech"
    python run_hunt.py cleanup --all --dry-run
"""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

import yaml

from hunt.agent import add_candidates, cleanup_artifacts, cleanup_duplicates, rank
from hunt.config import load_settings
from hunt.errors import HuntError, MalformedCandidateError
from hunt.extract import candidate_from_text
from hunt.log import get_logger, set_level
from hunt.models import CandidateRecord, EmployerStatus, JobStatus
from hunt.report import build_ranking_report, format_pay, write_report
from hunt.tracker import Tracker

log = get_logger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Track job postings without duplicates.")
    p.add_argument("--data-dir", type=Path, default=None, help="Directory holding the CSV tables.")
    noise = p.add_mutually_exclusive_group()
    noise.add_argument("-v", "--verbose", action="store_true", help="Log matching decisions.")
    noise.add_argument("-q", "--quiet", action="store_true", help="Only log warnings and errors.")
    sub = p.add_subparsers(dest="command", required=True)

    add = sub.add_parser("add", help="Add one posting (title, or pasted text with --text).")
    add.add_argument("title", help="Job title, or the whole posting text with --text.")
    add.add_argument("--employer", default=None)
    add.add_argument("--url", default="")
    add.add_argument("--pay-min", type=int, default=None)
    add.add_argument("--pay-max", type=int, default=None)
    add.add_argument("--source", default="manual")
    add.add_argument("--text", action="store_true", help="Parse TITLE as a pasted posting.")

    imp = sub.add_parser("import", help="Add candidates from a YAML or JSON list.")
    imp.add_argument("path", type=Path)
    imp.add_argument("--dry-run", action="store_true")
    imp.add_argument("--keep-noise", action="store_true", help="Keep link text and search pages.")

    ls = sub.add_parser("list", help="List tracked jobs.")
    ls.add_argument("--status", choices=[s.value for s in JobStatus], default=None)
    ls.add_argument("--employer", default=None)

    show = sub.add_parser("show", help="Show one job.")
    show.add_argument("id", type=int)

    rk = sub.add_parser("rank", help="Rank open jobs by score.")
    rk.add_argument("--limit", type=int, default=10)
    rk.add_argument("--all", action="store_true", help="Include rejected and closed jobs.")
    rk.add_argument("--report", action="store_true", help="Also write a markdown report.")

    st = sub.add_parser("status", help="Move a job from one status to the next.")
    st.add_argument("id", type=int)
    st.add_argument("source", choices=[s.value for s in JobStatus])
    st.add_argument("target", choices=[s.value for s in JobStatus])

    emp = sub.add_parser("employer", help="List employers or set an employer's status.")
    emp.add_argument("action", choices=["list"] + [s.value for s in EmployerStatus])
    emp.add_argument("name", nargs="?", default=None)
    emp.add_argument("--create", action="store_true", help="Add the employer if it is not tracked yet.")

    cl = sub.add_parser("cleanup", help="Remove duplicates and navigation artifacts.")
    cl.add_argument("--duplicates", action="store_true")
    cl.add_argument("--artifacts", action="store_true")
    cl.add_argument("--all", action="store_true")
    cl.add_argument("--dry-run", action="store_true")
    return p.parse_args(argv)


def load_candidates(path: Path) -> tuple[list[tuple[int, CandidateRecord]], list[tuple[int, str]]]:
    """Records from a YAML or JSON file, each with its position in the file.

    A record that cannot be read is reported by position and the rest still load.
    """
    text = path.read_text(encoding="utf-8")
    data = json.loads(text) if path.suffix.lower() == ".json" else yaml.safe_load(text)
    if isinstance(data, dict):
        data = data.get("jobs", [])
    records: list[tuple[int, CandidateRecord]] = []
    errors: list[tuple[int, str]] = []
    for position, item in enumerate(data or []):
        if not isinstance(item, dict):
            errors.append((position, f"Record is not a mapping: {item!r}"))
            continue
        try:
            records.append((position, CandidateRecord.from_dict(item)))
        except MalformedCandidateError as exc:
            log.warning("Rejected record #%d in %s: %s", position, path.name, exc)
            errors.append((position, str(exc)))
    return records, errors


def _print_summary(summary: dict) -> None:
    print(
        f"Added {len(summary['added'])}, merged {len(summary['merged'])}, "
        f"skipped {summary['duplicates']} duplicate(s)."
    )
    if summary["skipped"]:
        print(f"Ignored {summary['skipped']} link(s) that are not postings.")
    for position, reason in summary["errors"]:
        print(f"  ✗ #{position}: {reason}")


def cmd_add(tracker: Tracker, args: argparse.Namespace) -> int:
    if args.text:
        cand = candidate_from_text(args.title, employer=args.employer, url=args.url, source=args.source)
        if args.pay_min is not None or args.pay_max is not None:
            cand.pay_min, cand.pay_max = args.pay_min, args.pay_max
    else:
        cand = CandidateRecord(
            title=args.title, employer_name=args.employer or "", url=args.url,
            pay_min=args.pay_min, pay_max=args.pay_max, source=args.source,
        )
    summary = add_candidates(tracker, [cand])
    _print_summary(summary)
    return 1 if summary["errors"] else 0


def cmd_import(tracker: Tracker, args: argparse.Namespace) -> int:
    records, load_errors = load_candidates(args.path)
    summary = add_candidates(
        tracker, [cand for _, cand in records], dry_run=args.dry_run, skip_noise=not args.keep_noise,
    )
    # report every problem by its position in the file
    summary["errors"] = sorted(load_errors + [(records[i][0], reason) for i, reason in summary["errors"]])
    _print_summary(summary)
    return 1 if summary["errors"] else 0


def cmd_list(tracker: Tracker, args: argparse.Namespace) -> int:
    jobs = tracker.list_jobs(employer=args.employer, status=args.status)
    print(f"{'ID':>4}  {'STATUS':<10} {'EMPLOYER':<22} {'TITLE':<40} PAY")
    for job in jobs:
        print(
            f"{job.id:>4}  {job.status.value:<10} {job.employer_name[:22]:<22} "
            f"{job.title[:40]:<40} {format_pay(job.pay_min, job.pay_max)}"
        )
    return 0


def cmd_show(tracker: Tracker, args: argparse.Namespace) -> int:
    job = tracker.get_job(args.id)
    print(f"Job #{job.id}: {job.title}")
    print(f"Employer: {job.employer_name}")
    print(f"Status: {job.status.value}")
    if job.url:
        print(f"URL: {job.url}")
    if job.job_code:
        print(f"Job code: {job.job_code}")
    print(f"Pay: {format_pay(job.pay_min, job.pay_max)}")
    print(f"Added: {job.created_at}  Updated: {job.updated_at}")
    print(f"Snapshots: {len(tracker.list_snapshots(job.id))}")
    if job.raw_text:
        print()
        print(job.raw_text)
    return 0


def cmd_rank(tracker: Tracker, args: argparse.Namespace) -> int:
    ranked = rank(tracker, limit=None, include_closed=args.all)
    for i, r in enumerate(ranked[: args.limit], 1):
        print(f"{i:>3}. [{r.score:>4}] #{r.job.id} {r.job.title} @ {r.employer.name}")
    if args.report:
        path = write_report(build_ranking_report(ranked))
        print(f"Report: {path}")
    return 0


def cmd_status(tracker: Tracker, args: argparse.Namespace) -> int:
    job = tracker.set_status(args.id, JobStatus(args.source), JobStatus(args.target))
    print(f"Job #{job.id} is now {job.status.value}")
    return 0


def cmd_employer(tracker: Tracker, args: argparse.Namespace) -> int:
    if args.action == "list":
        for e in tracker.list_employers():
            print(f"{e.id:>4}  {e.status.value:<6} {e.name}")
        return 0
    if not args.name:
        print("Employer name required")
        return 2
    if args.create:
        tracker.get_or_create_employer(args.name)
    employer = tracker.set_employer_status(args.name, EmployerStatus(args.action))
    print(f"{employer.name} → {employer.status.value}")
    return 0


def cmd_cleanup(tracker: Tracker, args: argparse.Namespace) -> int:
    if not (args.duplicates or args.artifacts or args.all):
        print("No cleanup operation specified. Use --artifacts, --duplicates, or --all")
        return 2
    verb = "Would remove" if args.dry_run else "Removed"
    if args.artifacts or args.all:
        removed = cleanup_artifacts(tracker, dry_run=args.dry_run)
        print(f"{verb} {len(removed)} artifact job(s)")
    if args.duplicates or args.all:
        pairs = cleanup_duplicates(tracker, settings=load_settings(), dry_run=args.dry_run)
        for pair in pairs:
            print(f"  {pair.message}")
        print(f"{verb} {len(pairs)} duplicate job(s)")
    return 0


COMMANDS = {
    "add": cmd_add,
    "import": cmd_import,
    "list": cmd_list,
    "show": cmd_show,
    "rank": cmd_rank,
    "status": cmd_status,
    "employer": cmd_employer,
    "cleanup": cmd_cleanup,
}


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    if args.verbose:
        set_level("DEBUG")
    elif args.quiet:
        set_level("WARNING")
    tracker = Tracker(args.data_dir)
    try:
        return COMMANDS[args.command](tracker, args)
    except HuntError as exc:
        log.error("%s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
