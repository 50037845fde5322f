from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from enum import Enum

# ==================== ENUMS ====================

class ScopeType(str, Enum):
    CONTEST = "contest"
    ASSIGNMENT = "assignment"


class ScopeState(str, Enum):
    DRAFT = "Draft"
    UPCOMING = "Upcoming"
    ACTIVE = "Active"
    COMPLETED = "Completed"


class SubmissionStatus(str, Enum):
    PENDING = "PENDING"
    PASSED = "PASSED"
    FAILED = "FAILED"
    NOT_ATTEMPTED = "NOT_ATTEMPTED"

# ==================== SHARED SCOPE MODELS ====================

class ScopeProblem(BaseModel):
    problem_id: str
    points: Optional[int] = Field(None, ge=0)


class SubmitRequest(BaseModel):
    problem_id: str
    code: str = Field(..., min_length=1)
    language: str

# ==================== LEADERBOARD ====================

class Standing(BaseModel):
    rank: int
    student_id: str
    student_name: Optional[str] = None
    total_points: int = 0
    problems_solved: int = 0
    last_submission_at: Optional[datetime] = None


class ProblemProgress(BaseModel):
    problem_id: str
    title: Optional[str] = None
    points: int
    status: SubmissionStatus
    attempts: int = 0


class ProgressResponse(BaseModel):
    scope_type: ScopeType
    scope_id: str
    state: ScopeState
    personal_state: ScopeState
    enrolled: bool = False
    joined_at: Optional[datetime] = None
    personal_end: Optional[datetime] = None
    total_points: int = 0
    problems_solved: int = 0
    problems: List[ProblemProgress] = []
