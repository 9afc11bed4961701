"""Base model and shared field types for feeding models.

Every model inherits from :class:`FeedingBaseModel`, which is frozen
(updates go through ``model_copy``), strips surrounding whitespace from
strings and ignores unknown keys so datastore bookkeeping columns such as
``id``, ``created_at`` or ``owner`` never break parsing.
"""

from __future__ import annotations

import re
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict

_DATE_ID_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def check_date_id(value: str) -> str:
    """Validate a ``YYYY-MM-DD`` calendar-day identifier."""
    if not _DATE_ID_RE.match(value):
        raise ValueError(f"date must be YYYY-MM-DD, got {value!r}")
    return value


DateId = Annotated[str, AfterValidator(check_date_id)]
"""Annotated type for a local calendar-day identifier (``YYYY-MM-DD``)."""


class FeedingBaseModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        str_strip_whitespace=True,
    )
