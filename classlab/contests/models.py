from pydantic import BaseModel, Field, validator
from typing import List, Optional
from datetime import datetime

from classlab.common import to_naive_utc
from classlab.participation.models import ScopeProblem


class ContestCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    start_time: datetime
    duration_minutes: int = Field(..., gt=0)
    problems: List[ScopeProblem]
    is_published: bool = False

    @validator('start_time')
    def normalize_start(cls, v):
        return to_naive_utc(v)


class ContestUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    start_time: Optional[datetime] = None
    duration_minutes: Optional[int] = Field(None, gt=0)
    problems: Optional[List[ScopeProblem]] = None

    @validator('start_time')
    def normalize_start(cls, v):
        return to_naive_utc(v)


class PublishRequest(BaseModel):
    is_published: bool
