"""
Pydantic schemas for user and authentication endpoints.
Field names follow the JSON bodies clients send (camelCase).
"""
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from natours.models.user import Role

__all__ = [
    "SignupIn",
    "LoginIn",
    "ForgotPasswordIn",
    "ResetPasswordIn",
    "UpdatePasswordIn",
    "UpdateMeIn",
    "UserUpdateIn",
]

PASSWORD_MIN_LENGTH = 8


class _PasswordPair(BaseModel):
    password: str = Field(min_length=PASSWORD_MIN_LENGTH)
    passwordConfirm: str

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.passwordConfirm:
            raise ValueError("Passwords are not the same!")
        return self


class SignupIn(_PasswordPair):
    """Request body for signup. Role defaults to "user"."""
    name: str = Field(min_length=1)
    email: EmailStr
    role: Role = Role.USER

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


class LoginIn(BaseModel):
    # Both optional so a missing field maps to the "Please provide" message
    email: Optional[str] = None
    password: Optional[str] = None


class ForgotPasswordIn(BaseModel):
    email: str


class ResetPasswordIn(_PasswordPair):
    pass


class UpdatePasswordIn(_PasswordPair):
    passwordCurrent: str


class UpdateMeIn(BaseModel):
    """Only profile data; password fields are accepted only to reject them."""
    name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[EmailStr] = None
    photo: Optional[str] = None
    password: Optional[str] = None
    passwordConfirm: Optional[str] = None


class UserUpdateIn(BaseModel):
    """Admin-side partial update."""
    name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[EmailStr] = None
    photo: Optional[str] = None
    role: Optional[Role] = None
    active: Optional[bool] = None
