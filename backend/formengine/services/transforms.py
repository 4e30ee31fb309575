"""Portal field transforms.

Transforms are data, not code: each ``TransformSpec`` variant maps to one
pure function here.
"""

import json
from datetime import date, datetime
from typing import Any, Optional

from formengine.exceptions import ValidationError
from formengine.schemas.mapping import (
    TransformSpec,
    TrimTransform,
    DateFormatTransform,
    EnumRelabelTransform,
    CaseTransform,
)


def _trim(spec: TrimTransform, value: Any) -> Any:
    if isinstance(value, str):
        return value.strip()
    return value


def _date_format(spec: DateFormatTransform, value: Any) -> str:
    if isinstance(value, (date, datetime)):
        return value.strftime(spec.to_format)
    if not isinstance(value, str):
        raise ValueError(f"expected a date string, got {type(value).__name__}")
    parsed = datetime.strptime(value.strip(), spec.from_format)
    return parsed.strftime(spec.to_format)


def _enum_relabel(spec: EnumRelabelTransform, value: Any) -> Any:
    # Booleans are keyed the way they arrive over JSON: "true" / "false"
    key = json.dumps(value) if isinstance(value, bool) else str(value)
    if key in spec.table:
        return spec.table[key]
    if spec.strict:
        raise ValueError(f"value '{key}' has no relabel entry")
    return value


def _case(spec: CaseTransform, value: Any) -> Any:
    if not isinstance(value, str):
        return value
    return value.upper() if spec.mode == "upper" else value.lower()


_HANDLERS = {
    "trim": _trim,
    "dateFormat": _date_format,
    "enumRelabel": _enum_relabel,
    "case": _case,
}


def apply_transform(spec: Optional[TransformSpec], value: Any, field_id: str = "") -> Any:
    """Apply a transform to an internal value, returning the portal-shaped value."""
    if spec is None:
        return value
    
    handler = _HANDLERS[spec.kind]
    try:
        return handler(spec, value)
    except ValueError as e:
        raise ValidationError(
            f"Transform '{spec.kind}' failed for field '{field_id}': {e}",
            details={"field_id": field_id, "transform": spec.kind},
        ) from e
