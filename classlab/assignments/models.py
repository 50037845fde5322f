from pydantic import BaseModel, Field, validator
from typing import List, Optional
from datetime import datetime

from classlab.common import to_naive_utc
from classlab.participation.models import ScopeProblem


class AssignmentCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    start_time: Optional[datetime] = None
    due_date: datetime
    problems: List[ScopeProblem]
    is_published: bool = False

    @validator('start_time', 'due_date')
    def normalize_dates(cls, v):
        return to_naive_utc(v)

    @validator('due_date')
    def due_after_start(cls, v, values):
        start = values.get('start_time')
        if start and v <= start:
            raise ValueError('due_date must be after start_time')
        return v


class AssignmentUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    start_time: Optional[datetime] = None
    due_date: Optional[datetime] = None
    problems: Optional[List[ScopeProblem]] = None

    @validator('start_time', 'due_date')
    def normalize_dates(cls, v):
        return to_naive_utc(v)
