"""
Records stored in the key-value store.

Everything is persisted as camelCase JSON (the wire format the dashboard and
the candidate-facing pages share); Python code uses the snake_case attribute
names.
"""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


def generate_id() -> str:
    return str(uuid.uuid4())

def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class CandidateStatus(str, Enum):
    CANDIDATE = "candidate"
    INTERVIEW = "interview"
    NEW_HIRE = "new-hire"
    EMPLOYEE = "employee"
    INACTIVE = "inactive"

class FormType(str, Enum):
    TEMPLATE = "template"
    CUSTOM = "custom"

class FieldType(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    EMAIL = "email"
    PHONE = "phone"
    TEXTAREA = "textarea"
    SELECT = "select"
    CHECKBOX = "checkbox"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class AiFormField(CamelModel):
    """A single typed field of a generated application form."""
    id: str = Field(description="A unique machine-readable ID for the field (e.g., 'firstName', 'yearsOfExperience').")
    label: str = Field(description="The human-readable label for the form field (e.g., 'First Name').")
    type: FieldType = Field(description="The type of input for the field.")
    options: Optional[List[str]] = Field(default=None, description="For 'select' type, a list of possible options.")
    required: bool = Field(description="Whether the field is mandatory.")

    @field_validator("id")
    @classmethod
    def id_must_be_identifier(cls, value: str) -> str:
        if not value.isidentifier():
            raise ValueError(f"Field id '{value}' is not a valid identifier.")
        return value

    @model_validator(mode="after")
    def check_options(self):
        if self.type == FieldType.SELECT:
            if not self.options:
                raise ValueError(f"Select field '{self.id}' must have options.")
        elif self.options:
            raise ValueError(f"Only select fields may have options ('{self.id}' is {self.type.value}).")
        else:
            self.options = None
        return self


def _check_unique_ids(items, what: str):
    seen = set()
    for item in items:
        if item.id in seen:
            raise ValueError(f"Duplicate {what} id '{item.id}'.")
        seen.add(item.id)


class ApplicationForm(CamelModel):
    id: str = Field(default_factory=generate_id)
    name: str = "Default Template Form"
    type: FormType = FormType.TEMPLATE
    images: List[str] = Field(default_factory=list)
    fields: List[AiFormField] = Field(default_factory=list)

    @model_validator(mode="after")
    def unique_field_ids(self):
        _check_unique_ids(self.fields, "field")
        return self


class InterviewScreen(CamelModel):
    type: FormType = FormType.TEMPLATE
    background_image: Optional[str] = None


class RequiredDoc(CamelModel):
    id: str = Field(default_factory=generate_id)
    label: str
    type: Literal["upload"] = "upload"


class OnboardingProcess(CamelModel):
    id: str = Field(default_factory=generate_id)
    name: str
    application_form: ApplicationForm = Field(default_factory=ApplicationForm)
    interview_screen: InterviewScreen = Field(default_factory=InterviewScreen)
    required_docs: List[RequiredDoc] = Field(default_factory=list)

    @model_validator(mode="after")
    def unique_doc_ids(self):
        _check_unique_ids(self.required_docs, "required document")
        return self


def default_onboarding_process() -> OnboardingProcess:
    return OnboardingProcess(
        name="Default Process",
        application_form=ApplicationForm(name="Default Template Form", type=FormType.TEMPLATE),
        interview_screen=InterviewScreen(type=FormType.TEMPLATE),
        required_docs=[],
    )


class Company(CamelModel):
    id: Optional[str] = None
    name: str = ""
    address: Optional[str] = None
    phone: Optional[str] = None
    fax: Optional[str] = None
    email: Optional[str] = None
    logo: Optional[str] = None
    created_at: Optional[str] = Field(default=None, alias="created_at")
    onboarding_processes: List[OnboardingProcess] = Field(default_factory=list)

    @model_validator(mode="after")
    def unique_process_ids(self):
        _check_unique_ids(self.onboarding_processes, "process")
        return self


class InterviewReview(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    reviewer: Optional[str] = None
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    recommendation: Optional[str] = None
    notes: Optional[str] = None
    reviewed_at: Optional[str] = None


class CandidateDocument(CamelModel):
    title: str
    url: str


# Candidate fields that hold a blob reference (or the "submitted" sentinel)
DOCUMENT_FIELDS = (
    "resume",
    "drivers_license",
    "id_card",
    "proof_of_address",
    "i9",
    "w4",
    "educational_diplomas",
    "application_pdf_url",
)

SUBMITTED = "submitted"


class ApplicationData(CamelModel):
    """A candidate's application record. Answers to custom form fields are kept as extra keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: Optional[str] = None
    first_name: str = "N/A"
    last_name: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    position: Optional[str] = None
    applying_for: List[str] = Field(default_factory=list)
    status: CandidateStatus = CandidateStatus.CANDIDATE
    date: Optional[str] = None
    form_name: Optional[str] = None
    interview_review: Optional[InterviewReview] = None

    resume: Optional[str] = None
    drivers_license: Optional[str] = None
    drivers_license_expiration: Optional[str] = None
    id_card: Optional[str] = None
    proof_of_address: Optional[str] = None
    i9: Optional[str] = None
    w4: Optional[str] = None
    educational_diplomas: Optional[str] = None
    application_pdf_url: Optional[str] = None
    documents: List[CandidateDocument] = Field(default_factory=list)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
