"""Rule document validation."""
from __future__ import annotations

from typing import Any, List, Optional

from ..exceptions import ValidationError
from ..schemas import iter_schema_issues


def validate_rule(payload: Any, *, file: Optional[str] = None) -> List[ValidationError]:
    """Check a rule document against the bundled rule schema.

    Returns one :class:`ValidationError` per violation; an empty list means
    the document can be turned into a :class:`Rule`.
    """
    if not isinstance(payload, dict):
        return [ValidationError.invalid_value("<root>", "mapping", type(payload).__name__, file=file)]

    rule_id = payload.get("id") if isinstance(payload.get("id"), str) else None
    errors: List[ValidationError] = []
    for issue in iter_schema_issues(payload, "rule"):
        if issue.keyword == "required":
            errors.append(ValidationError.missing_required(issue.field, file=file, rule_id=rule_id))
        else:
            errors.append(
                ValidationError.invalid_value(
                    issue.field,
                    issue.expected,
                    issue.received,
                    file=file,
                    rule_id=rule_id,
                )
            )
    return errors


__all__ = ["validate_rule"]
