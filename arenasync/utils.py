"""Utility functions for the application."""

from __future__ import annotations

from typing import Any

from flask import request
from werkzeug.datastructures import MultiDict

from .errors import ValidationError


def _form_value(value: Any) -> str:
    if value is None or value is False:
        return ""
    if value is True:
        return "y"
    return str(value)


def json_formdata(payload: dict[str, Any]) -> MultiDict:
    """Flatten a JSON object into form data WTForms can process.

    Lists become ``name-0``, ``name-1``... so they fill a ``FieldList``.
    """
    formdata: MultiDict = MultiDict()
    for key, value in payload.items():
        if isinstance(value, list):
            for index, item in enumerate(value):
                formdata.add(f"{key}-{index}", _form_value(item))
        else:
            formdata.add(key, _form_value(value))
    return formdata


def get_json_payload() -> dict[str, Any]:
    """Return the request's JSON object body.

    Raises:
        ValidationError: If the body is not a JSON object.
    """
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object.")
    return payload


def pop_revision(payload: dict[str, Any]) -> int | None:
    """Remove and return the optional ``revision`` the client last saw."""
    revision = payload.pop("revision", None)
    if revision is None:
        return None
    if isinstance(revision, bool) or not isinstance(revision, int) or revision < 0:
        raise ValidationError("Revision must be a non-negative integer.")
    return revision


def form_errors(form: Any) -> str:
    """Join a form's field errors into one message."""
    return "; ".join(
        f"{name}: {', '.join(str(e) for e in errors)}"
        for name, errors in form.errors.items()
    )
