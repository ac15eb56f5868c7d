from .user import User
from .role import Role
from .class_model import Class, ClassStudent
from .assignment import Assignment, Problem
from .submission import Submission
from .coding_test import CodingTest, TestProblem, TestCase
from .coding_session import TestSession, TestSubmission, TestPenalty
from .judge_instance import JudgeInstance
__all__ = ["User", "Role", "Class", "ClassStudent", "Assignment", "Problem", "Submission", "CodingTest", "TestProblem", "TestCase", "TestSession", "TestSubmission", "TestPenalty", "JudgeInstance"]
