from typing import Literal

from pydantic import BaseModel, Field, field_validator


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    email: str = Field(..., min_length=3, max_length=120)
    password: str = Field(..., min_length=6, max_length=128)
    role: Literal["TEACHER", "STUDENT"] = "STUDENT"

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        value = value.strip().lower()
        if "@" not in value or value.startswith("@") or value.endswith("@"):
            raise ValueError("Invalid email format")
        return value

    @field_validator("role", mode="before")
    @classmethod
    def upper_role(cls, value):
        return value.upper() if isinstance(value, str) else value


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class HackerRankLinkRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=100)
    session_cookie: str = Field(..., min_length=1)

    @field_validator("session_cookie")
    @classmethod
    def strip_cookie_name(cls, value: str) -> str:
        # Accept a pasted "_hrank_session=<value>" as well as the bare value
        value = value.strip()
        if value.startswith("_hrank_session="):
            value = value[len("_hrank_session="):]
        return value


class LeetCodeLinkRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=100)
