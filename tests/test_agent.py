from dataclasses import replace

from hunt.agent import add_candidates, cleanup_artifacts, cleanup_duplicates, rank
from hunt.config import MatchSettings
from hunt.models import CandidateRecord, EmployerStatus


def cand(title, employer="Acme Corp", **kw):
    return CandidateRecord(title=title, employer_name=employer, **kw)


def test_add_candidates_accepts_merges_and_reports(tracker, settings):
    first = add_candidates(tracker, [cand("Senior DevOps Engineer", url="https://acme.com/jobs/123")], settings=settings)
    assert first["added"] == [1]

    summary = add_candidates(
        tracker,
        [
            cand("Senior DevOps Engineer", url="https://acme.com/jobs/123?src=linkedin", pay_max=200_000),
            cand("DevOps Engineer", employer="Other Corp"),
            cand("", employer="Acme Corp"),
            cand("Sr. DevOps Engineer"),
        ],
        settings=settings,
    )
    assert summary["merged"] == [1]
    assert summary["added"] == [2]
    assert summary["duplicates"] == 1
    assert [pos for pos, _ in summary["errors"]] == [2]
    assert tracker.get_job(1).pay_max == 200_000
    assert len(tracker.list_jobs()) == 2


def test_add_candidates_dry_run_writes_nothing(tracker, settings):
    summary = add_candidates(tracker, [cand("SRE")], settings=settings, dry_run=True)
    assert summary["added"] == [None]
    assert tracker.list_jobs() == []


def test_small_batches_still_catch_cross_batch_duplicates(tracker, settings):
    small = replace(settings, matching=MatchSettings(batch_size=1))
    summary = add_candidates(
        tracker,
        [cand("Staff DevOps Engineer, DevInfra"), cand("Staff DevOps Engineer")],
        settings=small,
    )
    assert summary["added"] == [1]
    assert summary["duplicates"] == 1


def test_cleanup_duplicates_folds_and_purges(tracker, settings):
    tracker.insert_job(cand("DevOps Engineer", employer="Wiraa", created_at="2026-01-01 00:00:00"))
    tracker.insert_job(cand("DevOps Engineer", employer="Wiraa", pay_max=170_000, created_at="2026-01-02 00:00:00"))
    tracker.insert_job(cand("DevOps Engineer", employer="Other Company", created_at="2026-01-03 00:00:00"))

    preview = cleanup_duplicates(tracker, settings=settings, dry_run=True)
    assert len(preview) == 1
    assert len(tracker.list_jobs()) == 3

    pairs = cleanup_duplicates(tracker, settings=settings)
    assert [(p.kept_id, p.duplicate_id) for p in pairs] == [(1, 2)]
    remaining = {j.id: j for j in tracker.list_jobs()}
    assert sorted(remaining) == [1, 3]
    assert remaining[1].pay_max == 170_000


def test_cleanup_artifacts(tracker):
    tracker.insert_job(cand("Apply now"))
    tracker.insert_job(cand("Senior DevOps Engineer"))
    assert cleanup_artifacts(tracker) == [1]
    assert [j.title for j in tracker.list_jobs()] == ["Senior DevOps Engineer"]


def test_rank_uses_employer_status(tracker, settings):
    tracker.insert_job(cand("Staff Engineer", employer="Initech", pay_max=300_000))
    tracker.insert_job(cand("Platform Engineer"))
    tracker.set_employer_status("Initech", EmployerStatus.NEVER)
    ranked = rank(tracker, settings=settings)
    assert [(r.job.title, r.score) for r in ranked] == [("Platform Engineer", 55), ("Staff Engineer", -15)]


def test_skip_noise_drops_links_before_resolution(tracker, settings):
    summary = add_candidates(
        tracker,
        [
            cand("Jobs similar to DevOps Engineer", employer="LinkedIn"),
            cand("Platform Engineer", url="https://www.linkedin.com/comm/jobs/alerts"),
            cand("Senior DevOps Engineer"),
        ],
        settings=settings,
        skip_noise=True,
    )
    assert summary["skipped"] == 2
    assert summary["added"] == [1]


def test_url_merged_in_a_batch_is_not_tracked_twice(tracker, settings):
    tracker.insert_job(cand("Senior DevOps Engineer", created_at="2026-01-01 00:00:00"))
    summary = add_candidates(
        tracker,
        [
            cand("Senior DevOps Engineer", url="https://acme.com/jobs/555"),
            cand("Platform Lead", employer="Recruiter Inc", url="https://acme.com/jobs/555?src=mail"),
        ],
        settings=settings,
    )
    assert summary["merged"] == [1]
    assert summary["added"] == []
    assert summary["duplicates"] == 1
    [job] = tracker.list_jobs()
    assert job.url == "https://acme.com/jobs/555"
    assert cleanup_duplicates(tracker, settings=settings, dry_run=True) == []


def test_error_positions_survive_noise_skipping(tracker, settings):
    summary = add_candidates(
        tracker,
        [cand("See all jobs"), cand("Senior DevOps Engineer", employer="")],
        settings=settings,
        skip_noise=True,
    )
    assert [pos for pos, _ in summary["errors"]] == [1]
