from __future__ import annotations

import os
import tempfile

# keep test runs from writing dated log files into the project tree
os.environ.setdefault("HUNT_LOG_DIR", tempfile.mkdtemp(prefix="hunt-logs-"))
os.environ.setdefault("HUNT_LOG_FILE", "0")

import pytest

from hunt.config import Settings
from hunt.models import Employer, EmployerStatus, Job, JobStatus
from hunt.tracker import Tracker


@pytest.fixture
def tracker(tmp_path) -> Tracker:
    t = Tracker(tmp_path / "data")
    t.ensure_tracker()
    return t


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def make_job():
    counter = {"id": 0}

    def _make(title: str, employer: str = "Acme Corp", **kw) -> Job:
        counter["id"] += 1
        kw.setdefault("id", counter["id"])
        kw.setdefault("employer_id", 1)
        kw.setdefault("created_at", "2026-01-01 09:00:00")
        return Job(title=title, employer_name=employer, **kw)

    return _make


@pytest.fixture
def ok_employer() -> Employer:
    return Employer(id=1, name="Acme Corp", status=EmployerStatus.OK)


@pytest.fixture
def new_job(ok_employer) -> Job:
    return Job(id=1, employer_id=ok_employer.id, title="Platform Engineer", status=JobStatus.NEW)
