# app/schemas/auth.py
from typing import Any

from pydantic import EmailStr, ConfigDict, field_validator, model_validator
from sqlmodel import SQLModel, Field

MIN_PASSWORD_LENGTH = 6


class SignInRequest(SQLModel):
    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    password: str


class SignUpRequest(SQLModel):
    """
    Registration form.

    Validation rules:
      - password and confirmation must match
      - password has at least 6 characters
      - username cannot be blank
    """

    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    password: str
    confirm_password: str
    username: str = Field(max_length=50)

    @field_validator("username")
    @classmethod
    def normalize_username(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("username cannot be empty")
        return v

    @model_validator(mode="after")
    def check_passwords(self) -> "SignUpRequest":
        if self.password != self.confirm_password:
            raise ValueError("passwords do not match")
        if len(self.password) < MIN_PASSWORD_LENGTH:
            raise ValueError(f"password must be at least {MIN_PASSWORD_LENGTH} characters")
        return self


class AuthUser(SQLModel):
    """
    The slice of a Supabase auth user the wall needs.
    """

    id: str
    email: str | None = None
    user_metadata: dict[str, Any] = Field(default_factory=dict)
