from __future__ import annotations

from typing import Any, Dict, List

from relnotes.resources.release_notes.models import GenerationRequest, ValidationResult, parse_date

VALID_TONES = ["professional", "casual", "technical", "enthusiastic", "formal"]
VALID_AUDIENCES = ["developers", "business", "users", "mixed", "executives"]
VALID_FORMATS = ["markdown", "html"]
VALID_BREVITY_LEVELS = ["concise", "detailed", "comprehensive"]

VALIDATION_SUGGESTIONS = [
    "Ensure at least one team is selected",
    "Check that date ranges are valid (start before end)",
    "Verify priority filters are within 0-5 range",
]


def validate(request: GenerationRequest) -> ValidationResult:
    """
    Check a generation request before any network I/O.

    Every rule runs; the caller gets the full list of problems at once.
    """
    errors: List[str] = []

    if not request.teams:
        errors.append("At least one team must be selected")

    date_from = date_to = None
    dates_ok = True
    try:
        date_from = parse_date(request.date_range.from_)
    except ValueError:
        errors.append("Start date is not a valid date")
        dates_ok = False
    try:
        date_to = parse_date(request.date_range.to)
    except ValueError:
        errors.append("End date is not a valid date")
        dates_ok = False

    if dates_ok and date_from is not None and date_to is not None and date_from > date_to:
        errors.append("Start date must be before end date")

    min_priority = request.issue_filters.min_priority
    if min_priority is not None and min_priority < 0:
        errors.append("Minimum priority must be non-negative")
    if min_priority is not None and min_priority > 5:
        errors.append("Minimum priority must be 5 or less (Linear uses 0-5 scale)")

    # Malformed JSON fields were dropped by from_payload; report them too.
    errors.extend(e for e in request.input_errors if e not in errors)

    return ValidationResult(is_valid=not errors, errors=tuple(errors))


def validate_ai_context(data: Dict[str, Any]) -> ValidationResult:
    errors: List[str] = []

    if data.get("tone") and data["tone"] not in VALID_TONES:
        errors.append(f"Invalid tone. Must be one of: {', '.join(VALID_TONES)}")
    if data.get("audience") and data["audience"] not in VALID_AUDIENCES:
        errors.append(f"Invalid audience. Must be one of: {', '.join(VALID_AUDIENCES)}")
    if data.get("output_format") and data["output_format"] not in VALID_FORMATS:
        errors.append(f"Invalid output format. Must be one of: {', '.join(VALID_FORMATS)}")
    if data.get("brevity_level") and data["brevity_level"] not in VALID_BREVITY_LEVELS:
        errors.append(f"Invalid brevity level. Must be one of: {', '.join(VALID_BREVITY_LEVELS)}")

    return ValidationResult(is_valid=not errors, errors=tuple(errors))
