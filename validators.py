import os
from config import MAX_UPLOAD_SIZE_MB
from exceptions import ValidationException

IMAGE_EXTENSIONS = {'.png', '.jpg', '.jpeg', '.gif', '.webp'}
DOCUMENT_EXTENSIONS = IMAGE_EXTENSIONS | {'.pdf'}

def validate_upload_file(filename: str, file_size: int, allowed=DOCUMENT_EXTENSIONS):
    """
    Validates file extension and size.
    """
    if not filename:
        raise ValidationException("A file is required.")

    _, ext = os.path.splitext(filename)
    if ext.lower() not in allowed:
        raise ValidationException(
            f"Invalid file format: {ext or '(none)'}. Allowed: {', '.join(sorted(allowed))}"
        )

    if file_size == 0:
        raise ValidationException("Uploaded file is empty.")

    if file_size > (MAX_UPLOAD_SIZE_MB * 1024 * 1024):
        raise ValidationException(
            f"File too large. Max size is {MAX_UPLOAD_SIZE_MB}MB."
        )

def validate_phone_number(phone: str):
    """
    Basic phone number validation.
    """
    digits = phone.replace('+', '').replace(' ', '').replace('-', '').replace('(', '').replace(')', '')
    if phone and not digits.isdigit():
        raise ValidationException("Phone number must contain only digits and optional +")

def validate_company_name(name):
    """A company needs a name before processes can be added or generated for it."""
    if not name or not name.strip():
        raise ValidationException("Company name is required.")

def validate_form_purpose(purpose):
    if not purpose or not purpose.strip():
        raise ValidationException("Form purpose is required.")

def validate_license_renewal(filename, content, expiration_date):
    if not filename or not content or not expiration_date:
        raise ValidationException(
            "Please provide both a new license file and an expiration date."
        )
