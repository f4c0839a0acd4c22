from __future__ import annotations

import pytest

import lifecycle
from exceptions import NotFoundError, ValidationException
from models import CandidateStatus


@pytest.fixture
def applicant(candidates):
    return candidates.create({"firstName": "Grace", "lastName": "Hopper", "email": "grace@example.com"})


def test_transition_table():
    S = CandidateStatus
    assert lifecycle.can_transition(S.CANDIDATE, S.INTERVIEW)
    assert lifecycle.can_transition(S.INTERVIEW, S.NEW_HIRE)
    assert lifecycle.can_transition(S.NEW_HIRE, S.EMPLOYEE)
    assert lifecycle.can_transition(S.EMPLOYEE, S.INACTIVE)
    assert not lifecycle.can_transition(S.CANDIDATE, S.NEW_HIRE)
    assert not lifecycle.can_transition(S.NEW_HIRE, S.CANDIDATE)


def test_happy_path(candidates, applicant):
    candidate = lifecycle.set_to_interview(candidates, applicant.id)
    assert candidate.status == CandidateStatus.INTERVIEW
    assert lifecycle.shows_interview_tab(candidate)
    assert not lifecycle.shows_documentation_tab(candidate)

    candidates.update_with_interview_review(applicant.id, {"reviewer": "Sam", "rating": 5})
    candidate = lifecycle.mark_as_new_hire(candidates, applicant.id)
    assert candidate.status == CandidateStatus.NEW_HIRE
    assert lifecycle.shows_documentation_tab(candidate)

    candidate = lifecycle.activate(candidates, applicant.id)
    assert candidate.status == CandidateStatus.EMPLOYEE
    candidate = lifecycle.deactivate(candidates, applicant.id)
    assert candidate.status == CandidateStatus.INACTIVE
    assert lifecycle.shows_documentation_tab(candidate)


def test_new_hire_requires_interview_review(candidates, applicant):
    lifecycle.set_to_interview(candidates, applicant.id)

    with pytest.raises(ValidationException):
        lifecycle.mark_as_new_hire(candidates, applicant.id)
    assert candidates.get(applicant.id).status == CandidateStatus.INTERVIEW


def test_cannot_skip_the_interview(candidates, applicant):
    candidates.update_with_interview_review(applicant.id, {"reviewer": "Sam"})

    with pytest.raises(ValidationException):
        lifecycle.mark_as_new_hire(candidates, applicant.id)


def test_reject_deletes_the_candidate(candidates, applicant):
    rejected = lifecycle.reject(candidates, applicant.id)

    assert rejected.id == applicant.id
    with pytest.raises(NotFoundError):
        candidates.get(applicant.id)


def test_hired_people_cannot_be_rejected(candidates, applicant):
    candidates.update_status(applicant.id, CandidateStatus.EMPLOYEE)

    with pytest.raises(ValidationException):
        lifecycle.reject(candidates, applicant.id)
    assert candidates.get(applicant.id).status == CandidateStatus.EMPLOYEE
