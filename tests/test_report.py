from hunt.models import Employer, EmployerStatus, Job
from hunt.report import build_ranking_report, format_pay, write_report
from hunt.scorer import RankedJob


def test_format_pay():
    assert format_pay(None, None) == "—"
    assert format_pay(150_000, 200_000) == "$150,000 – $200,000"
    assert format_pay(None, 180_000) == "$180,000"


def test_ranking_report_lists_jobs_and_flags_employers():
    acme = Employer(id=1, name="Acme Corp")
    initech = Employer(id=2, name="Initech", status=EmployerStatus.NEVER)
    ranked = [
        RankedJob(Job(id=1, employer_id=1, title="Platform Engineer", url="https://www.acme.com/jobs/1"), acme, 55),
        RankedJob(Job(id=2, employer_id=2, title="Staff Engineer"), initech, -15),
    ]
    report = build_ranking_report(ranked)
    assert "**2** open jobs ranked" in report
    assert "| 1 | 55 | Platform Engineer (#1) |" in report
    assert "[Acme](https://www.acme.com/jobs/1)" in report
    assert "## Flagged employers" in report
    assert "**Initech** — _never_ — Staff Engineer" in report


def test_empty_report():
    assert "_Nothing tracked yet._" in build_ranking_report([])


def test_write_report(tmp_path):
    path = write_report("# hi", reports_dir=tmp_path / "reports")
    assert path.read_text(encoding="utf-8") == "# hi"
    assert path.name.startswith("ranking_")
