"""Exception types raised by the engine and the record store."""
from __future__ import annotations


class HuntError(Exception):
    """Base class for every error the tracker reports on purpose."""


class MalformedCandidateError(HuntError):
    """A candidate record is missing a required field or carries an unreadable one."""

    def __init__(self, field: str, title: str = "", value: str | None = None) -> None:
        self.field = field
        self.title = title
        self.value = value
        label = f" ({title!r})" if title else ""
        if value is None:
            msg = f"Candidate{label} has an empty {field}"
        else:
            msg = f"Candidate{label} has an unreadable {field}: {value!r}"
        super().__init__(msg)


class InvalidTransitionError(HuntError):
    def __init__(self, job_id: int | None, current: str, source: str, target: str) -> None:
        self.job_id = job_id
        self.current = current
        self.source = source
        self.target = target
        if current != source:
            msg = f"Job #{job_id} is '{current}', not '{source}'"
        else:
            msg = f"Job #{job_id} cannot move from '{source}' to '{target}'"
        super().__init__(msg)


class UnknownJobError(HuntError):
    def __init__(self, job_id: int) -> None:
        self.job_id = job_id
        super().__init__(f"No job with id {job_id}")


class UnknownEmployerError(HuntError):
    def __init__(self, ref: int | str) -> None:
        self.ref = ref
        super().__init__(f"No employer {ref!r}")
