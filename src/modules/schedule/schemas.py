"""Schedule schemas."""

import datetime as dt

from pydantic import BaseModel


class AvailableSlots(BaseModel):
    professional_id: str
    date: dt.date
    slots: list[str]
