from __future__ import annotations
from pydantic import BaseModel, Field
from typing import Union


class ManualRequest(BaseModel):
    enabled: bool


class ModeRequest(BaseModel):
    mode: Union[int, str]  # 0..3 or "time_window" etc.


class WindowIn(BaseModel):
    start_time: str  # "HH:MM"
    end_time: str    # "HH:MM"


class ThresholdRequest(BaseModel):
    level: int = Field(ge=0)


class SimBrightnessRequest(BaseModel):
    level: int = Field(ge=0)
