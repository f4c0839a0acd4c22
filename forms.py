"""
Application forms: which kind of form a process presents, and validation of
what a candidate submits through it.
"""
import re
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List

from exceptions import ValidationException
from models import AiFormField, ApplicationForm, FieldType, FormType
from validators import validate_phone_number


class FormKind(str, Enum):
    AI = "ai"            # interactive form built from generated fields
    IMAGES = "images"    # scanned pages, read-only, no data capture
    TEMPLATE = "template"


def resolve_form_kind(form: ApplicationForm) -> FormKind:
    if form.type == FormType.CUSTOM:
        if form.fields:
            return FormKind.AI
        if form.images:
            return FormKind.IMAGES
    return FormKind.TEMPLATE


def is_ai_form(form: ApplicationForm) -> bool:
    return resolve_form_kind(form) == FormKind.AI


def is_image_form(form: ApplicationForm) -> bool:
    return resolve_form_kind(form) == FormKind.IMAGES


# The built-in application form used by "template" processes
TEMPLATE_APPLICATION_FIELDS: List[AiFormField] = [
    AiFormField(id="firstName", label="First Name", type=FieldType.TEXT, required=True),
    AiFormField(id="lastName", label="Last Name", type=FieldType.TEXT, required=True),
    AiFormField(id="email", label="Email Address", type=FieldType.EMAIL, required=True),
    AiFormField(id="phone", label="Phone Number", type=FieldType.PHONE, required=True),
    AiFormField(id="address", label="Street Address", type=FieldType.TEXT, required=False),
    AiFormField(id="city", label="City", type=FieldType.TEXT, required=False),
    AiFormField(id="state", label="State", type=FieldType.TEXT, required=False),
    AiFormField(id="zip", label="Zip Code", type=FieldType.TEXT, required=False),
    AiFormField(id="position", label="Position Applying For", type=FieldType.TEXT, required=True),
]


def fields_for(form: ApplicationForm) -> List[AiFormField]:
    """Fields a candidate fills in; empty for image-only forms."""
    kind = resolve_form_kind(form)
    if kind == FormKind.AI:
        return form.fields
    if kind == FormKind.TEMPLATE:
        return TEMPLATE_APPLICATION_FIELDS
    return []


EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _as_text(field: AiFormField, value: Any) -> str:
    return str(value).strip()

def _as_number(field: AiFormField, value: Any):
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError("Must be a number.")
    return int(number) if number.is_integer() else number

def _as_email(field: AiFormField, value: Any) -> str:
    value = str(value).strip()
    if not EMAIL_RE.match(value):
        raise ValueError("Invalid email address.")
    return value

def _as_phone(field: AiFormField, value: Any) -> str:
    value = str(value).strip()
    if len(value) < 10:
        raise ValueError("Phone number must be at least 10 characters.")
    try:
        validate_phone_number(value)
    except ValidationException as e:
        raise ValueError(str(e))
    return value

def _as_date(field: AiFormField, value: Any) -> str:
    try:
        return datetime.fromisoformat(str(value).strip().replace("Z", "+00:00")).isoformat()
    except ValueError:
        raise ValueError("Invalid date")

def _as_choice(field: AiFormField, value: Any) -> str:
    value = str(value).strip()
    if value not in (field.options or []):
        raise ValueError(f"Must be one of: {', '.join(field.options or [])}")
    return value

def _as_bool(field: AiFormField, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if str(value).strip().lower() in ("true", "on", "yes", "1"):
        return True
    if str(value).strip().lower() in ("false", "off", "no", "0"):
        return False
    raise ValueError("Must be true or false.")


FIELD_VALIDATORS: Dict[FieldType, Callable[[AiFormField, Any], Any]] = {
    FieldType.TEXT: _as_text,
    FieldType.TEXTAREA: _as_text,
    FieldType.NUMBER: _as_number,
    FieldType.EMAIL: _as_email,
    FieldType.PHONE: _as_phone,
    FieldType.DATE: _as_date,
    FieldType.SELECT: _as_choice,
    FieldType.CHECKBOX: _as_bool,
}


def validate_submission(fields: List[AiFormField], data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Checks submitted answers against the form's fields and returns the cleaned
    values keyed by field id. Keys that are not fields of the form are dropped.
    """
    cleaned: Dict[str, Any] = {}
    errors: Dict[str, str] = {}

    for field in fields:
        value = data.get(field.id)
        if value is None or (isinstance(value, str) and not value.strip()):
            if field.required:
                errors[field.id] = "This field must be checked." if field.type == FieldType.CHECKBOX else "This field is required."
            continue
        try:
            cleaned[field.id] = FIELD_VALIDATORS[field.type](field, value)
        except ValueError as e:
            errors[field.id] = str(e)
            continue
        if field.type == FieldType.CHECKBOX and field.required and cleaned[field.id] is not True:
            errors[field.id] = "This field must be checked."

    if errors:
        raise ValidationException("Form submission is invalid.", errors)
    return cleaned


def application_from_submission(cleaned: Dict[str, Any], company_name: str, form_name: str) -> Dict[str, Any]:
    """Shapes validated answers into a candidate record."""
    payload = dict(cleaned)
    payload["applyingFor"] = [company_name] if company_name else []
    payload["formName"] = form_name
    payload["firstName"] = cleaned.get("firstName") or cleaned.get("fullName") or "N/A"
    payload["lastName"] = cleaned.get("lastName") or ""
    return payload
