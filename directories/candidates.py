from datetime import date, datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple, Union

from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from config import EXPIRY_WARNING_DAYS
from db import KeyValueStore, build_upload_key
from events import ChangeNotifier
from exceptions import NotFoundError, ValidationException
from logging_config import setup_logger
from models import (
    DOCUMENT_FIELDS,
    SUBMITTED,
    ApplicationData,
    CandidateDocument,
    CandidateStatus,
    InterviewReview,
    generate_id,
    now_iso,
)
from repository import JsonCollectionRepository
from validators import validate_license_renewal, validate_upload_file

logger = setup_logger("CandidateDirectory")

CANDIDATES_KEY = "candidates_list"

EXPIRED = "expired"
EXPIRING_SOON = "expiring-soon"

# Statuses of people who have been hired and whose documents we keep an eye on
PERSONNEL_STATUSES = (CandidateStatus.NEW_HIRE, CandidateStatus.EMPLOYEE)

# Accept both the stored camelCase key and the attribute name
_DOCUMENT_KEYS = {**{to_camel(f): f for f in DOCUMENT_FIELDS}, **{f: f for f in DOCUMENT_FIELDS}}

# How each stored document field is described to the completeness checker
DOCUMENT_LABELS = {
    "resume": "Resume/CV",
    "application_pdf_url": "Application Form",
    "drivers_license": "Driver's License",
    "id_card": "Proof of Identity & Social Security",
    "proof_of_address": "Proof of Address",
    "i9": "Form I-9 (Employment Eligibility)",
    "w4": "Form W-4 (Tax Withholding)",
    "educational_diplomas": "Educational Diplomas or Certificates",
}

# Documentation checklist ids that map onto a fixed document field
CHECKLIST_FIELDS = {
    "i9": "i9",
    "w4": "w4",
    "proofOfIdentity": "idCard",
    "idCard": "idCard",
    "proofOfAddress": "proofOfAddress",
    "driversLicense": "driversLicense",
    "educationalDiplomas": "educationalDiplomas",
    "resume": "resume",
}


def to_datetime(value: Union[str, date, datetime, None]) -> Optional[datetime]:
    """Parses a stored date. Naive values are taken as UTC; unparseable ones give None."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def classify_license(expiration, now: Optional[datetime] = None, warning_days: int = EXPIRY_WARNING_DAYS) -> Optional[str]:
    """
    Returns "expired" for dates before now, "expiring-soon" for dates up to and
    including now + warning_days, and None otherwise.
    """
    expiry = to_datetime(expiration)
    if expiry is None:
        return None
    now = now or datetime.now(timezone.utc)
    if expiry < now:
        return EXPIRED
    if expiry <= now + timedelta(days=warning_days):
        return EXPIRING_SOON
    return None


def submitted_document_labels(candidate: ApplicationData) -> List[str]:
    labels = [label for field, label in DOCUMENT_LABELS.items() if getattr(candidate, field)]
    labels.extend(d.title for d in candidate.documents)
    return labels


class CandidateDirectory:
    """Candidate application records and the queries the dashboard runs over them."""

    def __init__(self, store: KeyValueStore, notifier: Optional[ChangeNotifier] = None):
        self.store = store
        self.repo = JsonCollectionRepository(store, CANDIDATES_KEY, ApplicationData, notifier)

    def list(self) -> List[ApplicationData]:
        return self.repo.list()

    def get(self, candidate_id: str) -> ApplicationData:
        candidate = self.repo.get_by_id(candidate_id)
        if candidate is None:
            raise NotFoundError(f"Candidate '{candidate_id}' not found.")
        return candidate

    def create(self, data: dict) -> ApplicationData:
        data = {k: v for k, v in data.items() if k not in ("id", "status", "date")}
        try:
            candidate = ApplicationData.model_validate(data)
        except ValidationError as e:
            raise ValidationException(f"Invalid application: {e.errors()[0]['msg']}") from e

        candidate.id = generate_id()
        candidate.date = now_iso()
        candidate.status = CandidateStatus.CANDIDATE
        self.repo.upsert(candidate)
        logger.info(f"New application from {candidate.full_name} ({candidate.id})")
        return candidate

    def update_status(self, candidate_id: str, status: Union[str, CandidateStatus]) -> ApplicationData:
        """Overwrites the status. No transition rules are applied here; see lifecycle."""
        try:
            status = CandidateStatus(status)
        except ValueError as e:
            valid = ", ".join(s.value for s in CandidateStatus)
            raise ValidationException(f"Invalid status '{status}'. Must be one of: {valid}") from e

        candidate = self.get(candidate_id)
        previous = candidate.status
        candidate.status = status
        self.repo.upsert(candidate)
        logger.info(f"Candidate {candidate_id} status {previous.value} -> {status.value}")
        return candidate

    def update_with_interview_review(self, candidate_id: str, review: Union[dict, InterviewReview]) -> ApplicationData:
        if isinstance(review, dict):
            try:
                review = InterviewReview.model_validate(review)
            except ValidationError as e:
                raise ValidationException(f"Invalid interview review: {e.errors()[0]['msg']}") from e
        if not review.reviewed_at:
            review.reviewed_at = now_iso()

        candidate = self.get(candidate_id)
        candidate.interview_review = review
        self.repo.upsert(candidate)
        logger.info(f"Recorded interview review for candidate {candidate_id}")
        return candidate

    def update_with_documents(self, candidate_id: str, documents: Dict[str, str]) -> ApplicationData:
        """
        Sets document fields from a map of field key to blob reference (or
        "submitted" when the document was only ticked off).
        """
        unknown = [k for k in documents if k not in _DOCUMENT_KEYS]
        if unknown:
            raise ValidationException(f"Unknown document field(s): {', '.join(unknown)}")

        candidate = self.get(candidate_id)
        for key, value in documents.items():
            if not value:
                raise ValidationException(f"Document '{key}' has no value.")
            setattr(candidate, _DOCUMENT_KEYS[key], value)
        self.repo.upsert(candidate)
        logger.info(f"Candidate {candidate_id} submitted: {', '.join(documents) or 'nothing'}")
        return candidate

    def add_document(self, candidate_id: str, title: str, filename: str, content: bytes) -> ApplicationData:
        if not title or not title.strip():
            raise ValidationException("Document title is required.")
        validate_upload_file(filename, len(content))
        self.get(candidate_id)
        key = self.store.put_blob(build_upload_key("doc", title, candidate_id), content)
        return self.add_document_reference(candidate_id, title, key)

    def add_document_reference(self, candidate_id: str, title: str, url: str) -> ApplicationData:
        """Attaches a generic {title, blob reference} document record."""
        if not title or not title.strip():
            raise ValidationException("Document title is required.")
        candidate = self.get(candidate_id)
        candidate.documents.append(CandidateDocument(title=title.strip(), url=url))
        self.repo.upsert(candidate)
        logger.info(f"Candidate {candidate_id} added document '{title.strip()}'")
        return candidate

    def delete(self, candidate_id: str) -> bool:
        deleted = self.repo.delete(candidate_id)
        if deleted:
            logger.info(f"Deleted candidate {candidate_id}")
        return deleted

    def update_license(self, candidate_id: str, filename: str, content: bytes, expiration_date) -> ApplicationData:
        """Stores a renewed driver's license and its new expiration date."""
        validate_license_renewal(filename, content, expiration_date)
        validate_upload_file(filename, len(content))
        expiry = to_datetime(expiration_date)
        if expiry is None:
            raise ValidationException(f"Invalid expiration date '{expiration_date}'.")

        candidate = self.get(candidate_id)
        key = self.store.put_blob(build_upload_key("license", candidate.full_name or filename), content)
        previous = candidate.drivers_license
        candidate.drivers_license = key
        candidate.drivers_license_expiration = expiry.isoformat()
        self.repo.upsert(candidate)

        if previous and previous not in (SUBMITTED, key):
            self.store.delete_blob(previous)
        logger.info(f"Updated driver's license for candidate {candidate_id}, expires {expiry.date()}")
        return candidate

    # Derived queries

    def by_status(self, status: CandidateStatus) -> List[ApplicationData]:
        return [c for c in self.list() if c.status == status]

    def new_candidates(self) -> List[ApplicationData]:
        return self.by_status(CandidateStatus.CANDIDATE)

    def interviewing(self) -> List[ApplicationData]:
        return self.by_status(CandidateStatus.INTERVIEW)

    def new_hires(self) -> List[ApplicationData]:
        return self.by_status(CandidateStatus.NEW_HIRE)

    def expiring_documentation(self, now: Optional[datetime] = None) -> List[Tuple[ApplicationData, str]]:
        """Hired people whose driver's license has expired or expires soon."""
        flagged = []
        for candidate in self.list():
            if candidate.status not in PERSONNEL_STATUSES:
                continue
            classification = classify_license(candidate.drivers_license_expiration, now)
            if classification:
                flagged.append((candidate, classification))
        return flagged
