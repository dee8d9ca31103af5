"""Helpers for validating JSON request bodies with WTForms."""

from __future__ import annotations

import datetime
from typing import Any

from werkzeug.datastructures import MultiDict

from kickabout.errors import ValidationError

ISO_DATETIME_FORMATS = [
    "%Y-%m-%dT%H:%M:%S.%f%z",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%dT%H:%M%z",
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M",
]


def _form_value(value: Any) -> str:
    """Render a JSON scalar the way a browser would submit it."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def json_formdata(payload: dict[str, Any], prefix: str = "") -> MultiDict:
    """Flatten a JSON object into the ``parent-child`` keys WTForms expects.

    Nested objects map onto ``FormField`` and lists onto ``FieldList``.
    ``None`` values are dropped so that ``Optional`` validators apply.
    """
    formdata: MultiDict = MultiDict()
    for key, value in payload.items():
        name = f"{prefix}{key}"
        if value is None:
            continue
        if isinstance(value, dict):
            formdata.update(json_formdata(value, f"{name}-"))
        elif isinstance(value, list):
            for index, item in enumerate(value):
                if isinstance(item, dict):
                    formdata.update(json_formdata(item, f"{name}-{index}-"))
                else:
                    formdata.add(f"{name}-{index}", _form_value(item))
        else:
            formdata.add(name, _form_value(value))
    return formdata


def validate_json(form_class: type, payload: Any, **kwargs: Any) -> Any:
    """Bind ``payload`` to ``form_class`` and return the validated form."""
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object.")
    form = form_class(formdata=json_formdata(payload), meta={"csrf": False}, **kwargs)
    if not form.validate():
        raise ValidationError("Validation failed.", errors=form.errors)
    return form


def as_utc(value: datetime.datetime | None) -> datetime.datetime | None:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value.astimezone(datetime.timezone.utc)
