from typing import Literal, Optional

from pydantic import BaseModel, Field

Language = Literal["cpp", "c", "java", "python", "javascript"]


class RealTimeExecution(BaseModel):
    code: str = Field(..., min_length=1)
    language: Language
    problem_id: int = Field(..., alias="problemId")

    model_config = {"populate_by_name": True}


class ProblemSolution(BaseModel):
    problem_id: int = Field(..., alias="problemId")
    code: str = Field(..., min_length=1)
    language: Language

    model_config = {"populate_by_name": True}


class MultiTestExecution(BaseModel):
    executions: list[ProblemSolution] = Field(..., min_length=1)


class FinalSubmission(BaseModel):
    submissions: list[ProblemSolution] = Field(..., min_length=1)


class HeartbeatUpdate(BaseModel):
    current_problem_index: Optional[int] = Field(default=None, ge=0, alias="currentProblemIndex")

    model_config = {"populate_by_name": True}


class PenaltyCreate(BaseModel):
    type: Literal["TAB_SWITCH", "FULLSCREEN_EXIT", "COPY_PASTE", "FOCUS_LOST", "OTHER"]
    reason: Optional[str] = Field(default=None, max_length=255)
