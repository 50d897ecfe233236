from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field

# Shapes only; formats and ranges are checked by the service so that
# Python callers and HTTP callers get the same errors.

class RuleIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    day_of_week: int = Field(alias="dayOfWeek")
    start_time: str = Field(alias="startTime")
    end_time: str = Field(alias="endTime")


class SlotTimesIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    start_time: str = Field(alias="startTime")
    end_time: str = Field(alias="endTime")
