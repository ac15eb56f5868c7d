from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field


class ClassCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None


class JoinClassRequest(BaseModel):
    join_code: str = Field(..., min_length=1, max_length=12)


class ProblemCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    url: str = Field(..., min_length=1, max_length=500)
    platform: Optional[Literal["hackerrank", "leetcode", "other"]] = None
    difficulty: Optional[str] = None


class AssignmentCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    assign_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    problems: list[ProblemCreate] = Field(..., min_length=1)
