"""Pydantic request schemas used to validate JSON bodies."""

from .auth import RegisterRequest, LoginRequest, HackerRankLinkRequest, LeetCodeLinkRequest
from .classroom import ClassCreate, JoinClassRequest, ProblemCreate, AssignmentCreate
from .coding_test import TestCaseCreate, TestProblemCreate, CodingTestCreate, CodingTestUpdate
from .session import (
    Language,
    RealTimeExecution,
    MultiTestExecution,
    ProblemSolution,
    FinalSubmission,
    HeartbeatUpdate,
    PenaltyCreate,
)

__all__ = [
    "RegisterRequest",
    "LoginRequest",
    "HackerRankLinkRequest",
    "LeetCodeLinkRequest",
    "ClassCreate",
    "JoinClassRequest",
    "ProblemCreate",
    "AssignmentCreate",
    "TestCaseCreate",
    "TestProblemCreate",
    "CodingTestCreate",
    "CodingTestUpdate",
    "Language",
    "RealTimeExecution",
    "MultiTestExecution",
    "ProblemSolution",
    "FinalSubmission",
    "HeartbeatUpdate",
    "PenaltyCreate",
]
