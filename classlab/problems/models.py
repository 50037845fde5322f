from pydantic import BaseModel, Field, validator
from typing import List, Optional
from enum import Enum

# ==================== ENUMS ====================

class Difficulty(str, Enum):
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"

# ==================== PROBLEM MODELS ====================

class TestCase(BaseModel):
    input: str = ""
    expected_output: str
    is_hidden: bool = False


class ProblemCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    difficulty: Difficulty
    points: int = Field(10, ge=0)
    time_limit_ms: int = Field(2000, ge=1)
    memory_limit_mb: int = Field(256, ge=1)
    sample_input: str = ""
    sample_output: str = ""
    test_cases: List[TestCase]

    class Config:
        use_enum_values = True

    @validator('test_cases')
    def validate_test_cases(cls, v):
        if not v:
            raise ValueError('At least one test case is required')
        return v


class ProblemUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    difficulty: Optional[Difficulty] = None
    points: Optional[int] = Field(None, ge=0)
    time_limit_ms: Optional[int] = Field(None, ge=1)
    memory_limit_mb: Optional[int] = Field(None, ge=1)
    sample_input: Optional[str] = None
    sample_output: Optional[str] = None
    test_cases: Optional[List[TestCase]] = None

    class Config:
        use_enum_values = True

    @validator('test_cases')
    def validate_test_cases(cls, v):
        if v is not None and not v:
            raise ValueError('At least one test case is required')
        return v


class RunRequest(BaseModel):
    code: str = Field(..., min_length=1)
    language: str

