"""Resolution of the free-form login identifier."""

from .errors import ValidationError


def canonical_email(value: str) -> str:
    return value.strip().lower()


def canonical_matric(value: str) -> str:
    return value.strip()


def resolve_identifier(
    identifier: str | None = None,
    email: str | None = None,
    matric_number: str | None = None,
) -> str:
    """Pick the authoritative identifier from the three accepted login fields.

    The first non-blank value wins, in the order ``identifier``, ``email``,
    ``matricNumber``. Surrounding whitespace is stripped. The result is
    matched against both the email and the matric number columns, so the
    caller does not need to know which kind it is.
    """
    for candidate in (identifier, email, matric_number):
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip()
    raise ValidationError("Email or matric number is required")
