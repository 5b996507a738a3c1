"""Validation of booking form responses against a definition's form config"""

import re
from datetime import date, datetime
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from ...errors import ValidationError
from ...shared.validators import validate_email, validate_phone, validate_url
from ..availability.schemas import FormConfig


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, (str, list)) and len(value) == 0)


def _check_text(field, value) -> Optional[str]:
    if not isinstance(value, str):
        return "must be text"
    if field.minLength is not None and len(value) < field.minLength:
        return f"must be at least {field.minLength} characters"
    if field.maxLength is not None and len(value) > field.maxLength:
        return f"must be at most {field.maxLength} characters"
    if field.pattern and not re.fullmatch(field.pattern, value):
        return "has an invalid format"
    try:
        if field.type == "email":
            validate_email(value)
        elif field.type == "phone":
            validate_phone(value)
        elif field.type == "url":
            validate_url(value)
    except ValueError as e:
        return str(e)
    return None


def _check_number(field, value) -> Optional[str]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return "must be a number"
    if field.min is not None and value < field.min:
        return f"must be at least {field.min}"
    if field.max is not None and value > field.max:
        return f"must be at most {field.max}"
    return None


def _check_date(field, value) -> Optional[str]:
    parse = date.fromisoformat if field.type == "date" else datetime.fromisoformat
    try:
        parsed = parse(value)
    except (TypeError, ValueError):
        return f"must be an ISO {field.type}"
    if field.min and parsed < parse(field.min):
        return f"must not be before {field.min}"
    if field.max and parsed > parse(field.max):
        return f"must not be after {field.max}"
    return None


def _check_choice(field, value) -> Optional[str]:
    allowed = {option.value for option in field.options}
    values = value if field.type == "multiselect" else [value]
    if field.type == "multiselect" and not isinstance(value, list):
        return "must be a list of options"
    invalid = [v for v in values if v not in allowed]
    if invalid:
        return f"has invalid option(s): {invalid}"
    return None


_CHECKS = {
    "text": _check_text,
    "textarea": _check_text,
    "email": _check_text,
    "phone": _check_text,
    "url": _check_text,
    "number": _check_number,
    "date": _check_date,
    "datetime": _check_date,
    "select": _check_choice,
    "multiselect": _check_choice,
    "checkbox": lambda field, value: None if isinstance(value, bool) else "must be true or false",
}


def validate_form_responses(form_config: Optional[dict], responses: Optional[dict]) -> Optional[dict]:
    """
    Check responses against the configured fields.

    Unknown keys and display fields are dropped. Raises ValidationError listing
    every failing field.
    """
    if not form_config:
        return responses or None
    try:
        config = FormConfig.model_validate(form_config)
    except PydanticValidationError as e:
        raise ValidationError(
            "Definition has an invalid form configuration",
            {"errors": e.errors(include_url=False, include_context=False)},
        ) from e

    responses = responses or {}
    cleaned = {}
    problems = {}

    for field in config.fields:
        if field.type == "display":
            continue
        value = responses.get(field.name)
        if _is_blank(value):
            if field.required:
                problems[field.name] = "is required"
            continue
        problem = _CHECKS[field.type](field, value)
        if problem:
            problems[field.name] = problem
        else:
            cleaned[field.name] = value

    if problems:
        raise ValidationError("Form responses are invalid", {"fields": problems})
    return cleaned or None
