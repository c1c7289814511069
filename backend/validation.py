"""
Payload validation shared by create and update.

Checks run in a fixed order and the first failure is reported:
  1. each text field: not blank, valid UTF-8, at most MAX_TEXT_BYTES
  2. amount field: finite and > 0
  3. date field: not the 0 sentinel
"""

import math

from codec import MAX_TEXT_BYTES
from errors import InvalidInput


def _label(field: str) -> str:
    return field.replace("_", " ").capitalize()


def validate_payload(record_cls, payload) -> None:
    """Raise InvalidInput for the first rule `payload` breaks."""
    for field in record_cls.TEXT_FIELDS:
        value = getattr(payload, field)
        if not value.strip():
            raise InvalidInput(f"{_label(field)} cannot be empty")
        try:
            size = len(value.encode("utf-8"))
        except UnicodeEncodeError:
            raise InvalidInput(f"{_label(field)} must be valid UTF-8 text") from None
        if size > MAX_TEXT_BYTES:
            raise InvalidInput(
                f"{_label(field)} is {size} bytes; at most {MAX_TEXT_BYTES} allowed"
            )

    amount = getattr(payload, record_cls.AMOUNT_FIELD)
    if not math.isfinite(amount) or amount <= 0:
        raise InvalidInput(f"{_label(record_cls.AMOUNT_FIELD)} must be greater than zero")

    if getattr(payload, record_cls.DATE_FIELD) == 0:
        raise InvalidInput(f"{_label(record_cls.DATE_FIELD)} must be a valid timestamp")
