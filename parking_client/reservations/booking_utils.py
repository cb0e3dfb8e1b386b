# Utility functions for reservation functionality: date handling and form input sanitizing
import re
from datetime import date, datetime
from typing import Dict, Union
import phonenumbers
from email_validator import validate_email, EmailNotValidError
from .error_utils import FormValidationError

DATE_FORMAT = "%Y-%m-%d"

MAX_EMAIL_LENGTH = 254
MAX_NAME_LENGTH = 50
MAX_PHONE_LENGTH = 20
MIN_PASSWORD_LENGTH = 8


def format_date(day: Union[date, datetime]) -> str:
    """
    Format a date as the YYYY-MM-DD string the parking API expects.
    """
    return day.strftime(DATE_FORMAT)


def parse_date(value: Union[str, date, datetime]) -> date:
    """
    Parse a YYYY-MM-DD string (or a full ISO timestamp) into a date.

    Raises: ValueError if the string is not a valid ISO date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    value = value.strip()
    # fromisoformat doesn't accept the trailing Z on older interpreters
    return datetime.fromisoformat(value.replace("Z", "+00:00")).date()


def normalize_date(value: Union[str, date, datetime, None]) -> str:
    """
    Normalize a date string or date object to YYYY-MM-DD so dates coming back from the API in
    different representations ("2025-12-20", "2025-12-20T00:00:00") compare equal.

    Returns the original value as a string if it can't be parsed.
    """
    if value is None:
        return ""
    try:
        return format_date(parse_date(value))
    except (ValueError, TypeError, AttributeError):
        return str(value)


def sanitize_email(email: str) -> str:
    """
    Strip, length check and validate an email address with email_validator.

    Returns: the normalized email address.
    Raises: ValueError with a user facing message.
    """
    email = (email or "").strip()
    if not email:
        raise ValueError("Email is required")
    if len(email) > MAX_EMAIL_LENGTH:
        raise ValueError("Email input is too long")
    try:
        # Deliverability needs DNS, the backend decides whether the account exists
        valid = validate_email(email, check_deliverability=False)
    except EmailNotValidError as e:
        raise ValueError(f"Invalid email format: {str(e)}")
    return valid.normalized


def sanitize_phone(phone: str) -> str:
    """
    Validate an optional phone number with the phonenumbers library.

    Returns: the number in E.164 format, or an empty string if no number was given.
    Raises: ValueError with a user facing message.
    """
    phone = (phone or "").strip()
    if not phone:
        return ""
    if len(phone) > MAX_PHONE_LENGTH:
        raise ValueError("Phone number input is too long")

    # Allowed characters: an optional leading '+', digits, spaces, hyphens, and parentheses.
    allowed_pattern = re.compile(r'^\+?[0-9\-\(\)\s]+$')
    if not allowed_pattern.fullmatch(phone):
        raise ValueError("Phone contains disallowed characters")

    try:
        # Numbers without an international prefix are assumed to be Serbian
        parsed_phone = phonenumbers.parse(phone, None if phone.startswith('+') else 'RS')
    except phonenumbers.NumberParseException:
        raise ValueError("Invalid phone number format")

    if not phonenumbers.is_possible_number(parsed_phone) or not phonenumbers.is_valid_number(parsed_phone):
        raise ValueError("Phone number is not valid")
    return phonenumbers.format_number(parsed_phone, phonenumbers.PhoneNumberFormat.E164)


def validate_login_form(form) -> Dict[str, str]:
    """
    Validate the login form. Returns the cleaned credentials ready to post.

    Raises: FormValidationError listing every failing field.
    """
    errors = {}
    cleaned = {}
    try:
        cleaned["email"] = sanitize_email(form.get("email"))
    except ValueError as e:
        errors["email"] = str(e)
    password = form.get("password") or ""
    if not password:
        errors["password"] = "Password is required"
    cleaned["password"] = password
    if errors:
        raise FormValidationError(errors)
    return cleaned


def validate_registration_form(form) -> Dict[str, str]:
    """
    Validate the registration form. Returns the cleaned payload (camelCase keys, as the API expects).

    Raises: FormValidationError listing every failing field.
    """
    errors = {}
    cleaned = {}
    try:
        cleaned["email"] = sanitize_email(form.get("email"))
    except ValueError as e:
        errors["email"] = str(e)

    password = form.get("password") or ""
    if len(password) < MIN_PASSWORD_LENGTH:
        errors["password"] = f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
    cleaned["password"] = password

    for field, key, label in (("first_name", "firstName", "First name"), ("last_name", "lastName", "Last name")):
        value = (form.get(field) or "").strip()
        if not value:
            errors[field] = f"{label} is required"
        elif len(value) > MAX_NAME_LENGTH:
            errors[field] = f"{label} must be at most {MAX_NAME_LENGTH} characters"
        cleaned[key] = value

    try:
        phone = sanitize_phone(form.get("phone_number"))
        if phone:
            cleaned["phoneNumber"] = phone
    except ValueError as e:
        errors["phone_number"] = str(e)

    if errors:
        raise FormValidationError(errors)
    return cleaned
