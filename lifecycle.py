"""
Candidate lifecycle.

All legal status changes live in TRANSITIONS. The dashboard actions go through
here; ``CandidateDirectory.update_status`` stays a raw overwrite for data fixes.
Rejection is not a status: a rejected candidate is deleted.
"""
from typing import Dict, FrozenSet

from directories.candidates import CandidateDirectory
from exceptions import ValidationException
from logging_config import setup_logger
from models import ApplicationData, CandidateStatus

logger = setup_logger("Lifecycle")

S = CandidateStatus

TRANSITIONS: Dict[CandidateStatus, FrozenSet[CandidateStatus]] = {
    S.CANDIDATE: frozenset({S.INTERVIEW}),
    S.INTERVIEW: frozenset({S.NEW_HIRE}),
    S.NEW_HIRE: frozenset({S.EMPLOYEE, S.INACTIVE}),
    S.EMPLOYEE: frozenset({S.INACTIVE}),
    S.INACTIVE: frozenset({S.EMPLOYEE}),
}

REJECTABLE = frozenset({S.CANDIDATE, S.INTERVIEW})
DOCUMENTATION_STATUSES = frozenset({S.NEW_HIRE, S.EMPLOYEE, S.INACTIVE})


def can_transition(current: CandidateStatus, target: CandidateStatus) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


def _advance(directory: CandidateDirectory, candidate_id: str, target: CandidateStatus) -> ApplicationData:
    candidate = directory.get(candidate_id)
    if not can_transition(candidate.status, target):
        raise ValidationException(
            f"Cannot move candidate from '{candidate.status.value}' to '{target.value}'."
        )
    return directory.update_status(candidate_id, target)


def set_to_interview(directory: CandidateDirectory, candidate_id: str) -> ApplicationData:
    return _advance(directory, candidate_id, S.INTERVIEW)


def mark_as_new_hire(directory: CandidateDirectory, candidate_id: str) -> ApplicationData:
    """
    Moves an interviewed candidate to new-hire. The interview review has to be
    on record first so that status and review never disagree. Missing documents
    do not block this.
    """
    candidate = directory.get(candidate_id)
    if candidate.interview_review is None:
        raise ValidationException("Record an interview review before marking the candidate as a new hire.")
    return _advance(directory, candidate_id, S.NEW_HIRE)


def activate(directory: CandidateDirectory, candidate_id: str) -> ApplicationData:
    return _advance(directory, candidate_id, S.EMPLOYEE)


def deactivate(directory: CandidateDirectory, candidate_id: str) -> ApplicationData:
    return _advance(directory, candidate_id, S.INACTIVE)


def reject(directory: CandidateDirectory, candidate_id: str) -> ApplicationData:
    candidate = directory.get(candidate_id)
    if candidate.status not in REJECTABLE:
        raise ValidationException(f"A candidate in status '{candidate.status.value}' cannot be rejected.")
    directory.delete(candidate_id)
    # No mail is sent; the notification is only recorded
    logger.info(
        f"(SIMULATED) Rejection notice sent to {candidate.full_name} <{candidate.email or 'no email'}>"
    )
    return candidate


def shows_interview_tab(candidate: ApplicationData) -> bool:
    return candidate.status == S.INTERVIEW


def shows_documentation_tab(candidate: ApplicationData) -> bool:
    return candidate.status in DOCUMENTATION_STATUSES


ACTIONS = {
    "set-to-interview": set_to_interview,
    "mark-as-new-hire": mark_as_new_hire,
    "activate": activate,
    "deactivate": deactivate,
    "reject": reject,
}
