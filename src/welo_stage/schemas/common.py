"""Shared Pydantic types for API and event payloads."""
from __future__ import annotations

from datetime import datetime
from typing import Annotated

from pydantic import AfterValidator

from welo_stage.db.time import as_utc

# Columns hold naive UTC; payloads always carry an explicit offset.
UTCDateTime = Annotated[datetime, AfterValidator(as_utc)]
