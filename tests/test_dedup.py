import pytest

from hunt.config import MatchSettings
from hunt.dedup import (
    Accept,
    Duplicate,
    MatchRule,
    Merge,
    find_duplicates,
    is_duplicate,
    match_rule,
    merge_fields,
    resolve,
    resolve_batch,
    validate_candidate,
)
from hunt.errors import MalformedCandidateError
from hunt.models import CandidateRecord


def cand(title, employer="Acme Corp", **kw):
    kw.setdefault("created_at", "2026-02-01 09:00:00")
    return CandidateRecord(title=title, employer_name=employer, **kw)


# ── rule precedence ─────────────────────────────────────────────────────


def test_scenario_a_url_rule(make_job):
    existing = make_job("Senior DevOps Engineer", url="https://acme.com/jobs/123")
    c = cand("Senior DevOps Engineer", url="https://acme.com/jobs/123?src=linkedin")
    assert match_rule(c, existing) is MatchRule.EXACT_URL
    assert is_duplicate(c, existing)


def test_scenario_b_fuzzy_rule(make_job):
    existing = make_job("Senior DevOps Engineer")
    c = cand("Sr. DevOps Engineer")
    assert match_rule(c, existing) is MatchRule.FUZZY


def test_scenario_c_different_employer(make_job):
    existing = make_job("DevOps Engineer", employer="Other Corp")
    assert match_rule(cand("DevOps Engineer"), existing) is MatchRule.NO_MATCH
    assert not is_duplicate(cand("DevOps Engineer"), existing)


def test_url_beats_employer_and_title(make_job):
    existing = make_job("Job Title A", employer="Company A", url="https://example.com/job/123")
    c = cand("Job Title B", employer="Company B", url="https://example.com/job/123")
    assert match_rule(c, existing) is MatchRule.EXACT_URL


def test_empty_urls_never_match_on_url(make_job):
    existing = make_job("Data Analyst", employer="Company A", url="")
    c = cand("Backend Engineer", employer="Company B", url="")
    assert match_rule(c, existing) is MatchRule.NO_MATCH


def test_exact_title_is_case_insensitive(make_job):
    existing = make_job("DevOps Engineer", employer="Wiraa")
    assert match_rule(cand("devops engineer", employer="WIRAA"), existing) is MatchRule.EXACT_TITLE


def test_substring_rule(make_job):
    existing = make_job("Staff DevOps Engineer, DevInfra", employer="Wiraa")
    assert match_rule(cand("Staff DevOps Engineer", employer="Wiraa"), existing) is MatchRule.SUBSTRING


def test_substring_minimum_length_is_tunable(make_job):
    existing = make_job("Support PM")
    assert match_rule(cand("PM"), existing) is MatchRule.SUBSTRING
    strict = MatchSettings(substring_min_length=3)
    assert match_rule(cand("PM"), existing, strict) is MatchRule.NO_MATCH


def test_fuzzy_threshold_is_strict(make_job):
    existing = make_job("Senior DevOps Engineer")
    assert match_rule(cand("Sr. DevOps Engineer"), existing, MatchSettings(fuzzy_threshold=0.99)) is MatchRule.NO_MATCH


def test_unrelated_titles_same_employer(make_job):
    existing = make_job("DevOps Engineer")
    assert match_rule(cand("Data Analyst"), existing) is MatchRule.NO_MATCH


# ── validation ──────────────────────────────────────────────────────────


@pytest.mark.parametrize(
    "title,employer,field",
    [("", "Acme", "title"), ("   ", "Acme", "title"), ("DevOps", "", "employer name"), ("...", "Acme", "title")],
)
def test_malformed_candidates(title, employer, field):
    with pytest.raises(MalformedCandidateError) as err:
        validate_candidate(cand(title, employer=employer))
    assert err.value.field == field


def test_resolve_rejects_malformed(make_job):
    with pytest.raises(MalformedCandidateError):
        resolve(cand("", employer="Acme Corp"), [make_job("DevOps Engineer")])


# ── resolve ─────────────────────────────────────────────────────────────


def test_accept_when_nothing_matches(make_job):
    out = resolve(cand("Data Analyst", url="https://acme.com/jobs/77?ref=x"), [make_job("DevOps Engineer")])
    assert isinstance(out, Accept)
    assert out.candidate.url == "https://acme.com/jobs/77"
    assert out.candidate.job_code == "acme-77"


def test_duplicate_without_new_information(make_job):
    existing = make_job("Senior DevOps Engineer", url="https://acme.com/jobs/123", job_code="acme-123")
    out = resolve(cand("Senior DevOps Engineer", url="https://acme.com/jobs/123?src=linkedin"), [existing])
    assert out == Duplicate(existing_id=existing.id, rule=MatchRule.EXACT_URL)


def test_merge_backfills_missing_pay(make_job):
    existing = make_job("Senior DevOps Engineer")
    out = resolve(cand("Senior DevOps Engineer", pay_min=150_000, pay_max=200_000), [existing])
    assert isinstance(out, Merge)
    assert out.existing_id == existing.id
    assert out.rule is MatchRule.EXACT_TITLE
    assert out.fields == {"pay_min": 150_000, "pay_max": 200_000}


def test_merge_backfills_description(make_job):
    existing = make_job("Senior DevOps Engineer", raw_text=None)
    out = resolve(cand("Senior DevOps Engineer", raw_text="Run the platform."), [existing])
    assert isinstance(out, Merge)
    assert out.fields["raw_text"] == "Run the platform."


def test_url_rule_wins_over_earlier_title_match(make_job):
    title_twin = make_job("DevOps Engineer")
    url_twin = make_job("Something Else", employer="Recruiter Inc", url="https://acme.com/jobs/9")
    out = resolve(cand("DevOps Engineer", url="https://acme.com/jobs/9"), [title_twin, url_twin])
    assert out.existing_id == url_twin.id
    assert out.rule is MatchRule.EXACT_URL


def test_strongest_title_rule_wins(make_job):
    fuzzy = make_job("Senior DevOps Engineer")
    exact = make_job("Sr. DevOps Engineer")
    out = resolve(cand("Sr DevOps Engineer"), [fuzzy, exact])
    assert out.existing_id == exact.id
    assert out.rule is MatchRule.EXACT_TITLE


def test_resolve_is_deterministic(make_job):
    existing = [make_job("Senior DevOps Engineer"), make_job("Data Analyst")]
    c = cand("Sr. DevOps Engineer", pay_max=180_000)
    assert resolve(c, existing) == resolve(c, existing)


# ── merge tie-break ─────────────────────────────────────────────────────


def test_conflicting_pay_prefers_newer_candidate(make_job):
    existing = make_job("DevOps Engineer", pay_min=100_000, pay_max=150_000, created_at="2026-01-01 00:00:00")
    newer = cand("DevOps Engineer", pay_min=120_000, pay_max=160_000, created_at="2026-02-01 00:00:00")
    assert merge_fields(newer, existing) == {"pay_min": 120_000, "pay_max": 160_000}


def test_conflicting_pay_keeps_newer_existing(make_job):
    existing = make_job("DevOps Engineer", pay_min=100_000, pay_max=150_000, created_at="2026-03-01 00:00:00")
    older = cand("DevOps Engineer", pay_min=120_000, pay_max=160_000, created_at="2026-02-01 00:00:00")
    assert merge_fields(older, existing) == {}


def test_older_candidate_still_fills_gaps(make_job):
    existing = make_job("DevOps Engineer", pay_min=100_000, created_at="2026-03-01 00:00:00")
    older = cand("DevOps Engineer", pay_max=160_000, raw_text="desc", created_at="2026-02-01 00:00:00")
    assert merge_fields(older, existing) == {"pay_max": 160_000, "raw_text": "desc"}


# ── batches ─────────────────────────────────────────────────────────────


def test_batch_keeps_input_order_for_intra_batch_duplicates():
    batch = [
        cand("Senior DevOps Engineer"),
        cand("Sr. DevOps Engineer", pay_min=150_000, pay_max=190_000),
        cand("Data Analyst"),
    ]
    results = resolve_batch(batch, [])
    assert [r.index for r in results] == [0, 1, 2]
    first, second, third = (r.outcome for r in results)
    assert isinstance(first, Accept)
    assert first.candidate.pay_max == 190_000
    assert second == Duplicate(existing_id=None, rule=MatchRule.FUZZY, batch_index=0)
    assert isinstance(third, Accept)


def test_batch_reports_malformed_without_dropping(make_job):
    results = resolve_batch([cand(""), cand("DevOps Engineer")], [make_job("DevOps Engineer")])
    assert isinstance(results[0].error, MalformedCandidateError)
    assert results[0].outcome is None
    assert isinstance(results[1].outcome, Duplicate)


def test_batch_threads_match_sequential(make_job):
    existing = [make_job("Senior DevOps Engineer"), make_job("Data Analyst", employer="Other Corp")]
    batch = [cand("Sr. DevOps Engineer"), cand("Data Analyst"), cand("Data Analyst", employer="Other Corp")]
    serial = resolve_batch(batch, existing, MatchSettings(workers=1))
    threaded = resolve_batch(batch, existing, MatchSettings(workers=4))
    assert [r.outcome for r in serial] == [r.outcome for r in threaded]


# ── cleanup pairing ─────────────────────────────────────────────────────


def test_find_duplicates_pairs_later_with_earliest(make_job):
    jobs = [
        make_job("DevOps Engineer", employer="Wiraa", created_at="2026-01-01 00:00:00"),
        make_job("DevOps Engineer", employer="Wiraa", created_at="2026-01-02 00:00:00"),
        make_job("DevOps Engineer", employer="Other Company", created_at="2026-01-03 00:00:00"),
    ]
    pairs = find_duplicates(jobs)
    assert len(pairs) == 1
    assert (pairs[0].kept_id, pairs[0].duplicate_id) == (jobs[0].id, jobs[1].id)
    assert pairs[0].rule is MatchRule.EXACT_TITLE


def test_batch_sees_urls_merged_onto_tracked_jobs(make_job):
    existing = [make_job("Senior DevOps Engineer")]
    batch = [
        cand("Senior DevOps Engineer", url="https://acme.com/jobs/555"),
        cand("Platform Lead", employer="Recruiter Inc", url="https://acme.com/jobs/555?src=mail"),
    ]
    first, second = (r.outcome for r in resolve_batch(batch, existing))
    assert isinstance(first, Merge)
    assert first.fields["url"] == "https://acme.com/jobs/555"
    assert second == Duplicate(existing_id=existing[0].id, rule=MatchRule.EXACT_URL)


def test_repeated_merges_into_one_job_stack(make_job):
    existing = [make_job("Senior DevOps Engineer")]
    batch = [
        cand("Senior DevOps Engineer", pay_max=190_000),
        cand("Senior DevOps Engineer", pay_max=190_000, raw_text="Full posting"),
    ]
    first, second = (r.outcome for r in resolve_batch(batch, existing))
    assert first.fields == {"pay_max": 190_000}
    assert second.fields == {"raw_text": "Full posting"}
