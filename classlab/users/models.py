from pydantic import BaseModel, Field, validator
from typing import Optional
from datetime import datetime
from enum import Enum


class UserRole(str, Enum):
    STUDENT = "student"
    FACULTY = "faculty"
    ADMIN = "admin"


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: str
    password: str = Field(..., min_length=6)
    reg_number: Optional[str] = None

    @validator('email')
    def validate_email(cls, v):
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError('Invalid email address')
        return v


class StudentCreate(UserCreate):
    reg_number: str = Field(..., min_length=1)


class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    reg_number: Optional[str] = None


class PasswordChange(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=6)


class LoginRequest(BaseModel):
    email: str
    password: str


class UserResponse(BaseModel):
    user_id: str
    name: str
    email: str
    role: UserRole
    reg_number: Optional[str] = None
    added_by: Optional[str] = None
    created_at: datetime
