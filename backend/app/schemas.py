from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class SessionStatus(BaseModel):
    roster: List[str]
    remaining: List[str]
    picked: List[str]
    total: int
    remaining_count: int
    picked_count: int
    exhausted: bool
    needs_reset: bool
    sound_enabled: bool


class PickResponse(BaseModel):
    name: str
    session: SessionStatus


class ImportRequest(BaseModel):
    content: str = Field(..., description="Raw file body: a JSON array of names or comma/line separated text")
    filename: Optional[str] = Field(default=None, description="Original file name; a .json suffix selects JSON parsing")
    format: Optional[Literal["json", "text"]] = Field(default=None, description="Explicit format, overrides the file name")


class Snapshot(BaseModel):
    roster: List[str]
    picked: List[str] = Field(default_factory=list)
    remaining: List[str] = Field(default_factory=list)
    timestamp: Optional[str] = None


class SoundSetting(BaseModel):
    enabled: bool
