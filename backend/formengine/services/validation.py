"""Field value checks: declared field type plus the field's validation rules."""

import math
import re
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from formengine.exceptions import ValidationError

# Rule types that only make sense for some field types
NUMERIC_RULES = ("min", "max")
TEXT_RULES = ("pattern", "minLength", "maxLength")

DEFAULT_MESSAGES = {
    "pattern": "must match the pattern {value}",
    "minLength": "must be at least {value} characters",
    "maxLength": "must be at most {value} characters",
    "min": "must be at least {value}",
    "max": "must be at most {value}",
}


def is_blank(value: Any) -> bool:
    """A value that does not satisfy a required field."""
    return value is None or value == ""


def _rule_values(rules: List[Dict[str, Any]], rule_type: str) -> List[Any]:
    return [rule["value"] for rule in rules if rule["type"] == rule_type]


def check_rules(field: Dict[str, Any]) -> None:
    """
    Reject rule sets that do not fit the field.

    min/max need a number field. A lower bound may not exceed its upper bound.
    """
    rules = field.get("rules") or []
    field_type = field.get("type", "text")

    for rule in rules:
        if rule["type"] in NUMERIC_RULES and field_type != "number":
            raise ValidationError(
                f"Field {field['id']}: {rule['type']} rules need a number field",
                details={"field_id": field["id"], "rule": rule["type"]},
            )
        if rule["type"] in TEXT_RULES and field_type == "boolean":
            raise ValidationError(
                f"Field {field['id']}: {rule['type']} rules do not apply to boolean fields",
                details={"field_id": field["id"], "rule": rule["type"]},
            )

    for low_type, high_type in (("minLength", "maxLength"), ("min", "max")):
        lows = _rule_values(rules, low_type)
        highs = _rule_values(rules, high_type)
        if lows and highs and max(lows) > min(highs):
            raise ValidationError(
                f"Field {field['id']}: {low_type} is greater than {high_type}",
                details={"field_id": field["id"], "rules": [low_type, high_type]},
            )


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _is_date(value: Any) -> bool:
    if isinstance(value, (date, datetime)):
        return True
    if not isinstance(value, str):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        try:
            datetime.fromisoformat(value)
        except ValueError:
            return False
    return True


def _type_error(field: Dict[str, Any], value: Any) -> Optional[str]:
    """Message for a value of the wrong kind, or None when it fits."""
    field_type = field.get("type", "text")

    if field_type == "number":
        return None if _as_number(value) is not None else "must be a number"
    if field_type == "date":
        return None if _is_date(value) else "must be a date (YYYY-MM-DD)"
    if field_type == "boolean":
        return None if isinstance(value, bool) else "must be true or false"
    if field_type == "choice":
        options = field.get("options")
        if options and value not in options:
            return f"must be one of: {', '.join(options)}"
        return None
    # text and file-reference hold a single value
    if isinstance(value, (dict, list)):
        return "must be a single value"
    return None


def _rule_failed(rule: Dict[str, Any], value: Any) -> bool:
    rule_type = rule["type"]
    limit = rule["value"]

    if rule_type == "pattern":
        return re.search(limit, str(value)) is None
    if rule_type == "minLength":
        return len(str(value)) < limit
    if rule_type == "maxLength":
        return len(str(value)) > limit

    number = _as_number(value)
    if number is None:
        return False
    if rule_type == "min":
        return number < limit
    return number > limit


def validate_value(field: Dict[str, Any], value: Any) -> List[str]:
    """
    Every problem with one field value, in rule order.

    Blank values are left to the required check. A value of the wrong
    type is reported once and its rules are not run.
    """
    if is_blank(value):
        return []

    type_error = _type_error(field, value)
    if type_error:
        return [type_error]

    errors = []
    for rule in field.get("rules") or []:
        if _rule_failed(rule, value):
            default = DEFAULT_MESSAGES[rule["type"]].format(value=rule["value"])
            errors.append(rule.get("message") or default)
    return errors
