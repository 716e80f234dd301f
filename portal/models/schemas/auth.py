"""
Pydantic schemas for the sign-up / login / password-reset flows.
"""
from pydantic import BaseModel, Field, EmailStr, ConfigDict, field_validator
from portal.config import PASSWORD_MIN_LENGTH
from .users import UserRead

class _EmailBody(BaseModel):
    email: EmailStr

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower()

class SignupRequest(_EmailBody):
    name: str = Field(min_length=1, max_length=200)
    password: str = Field(min_length=PASSWORD_MIN_LENGTH, max_length=128)

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "name": "Ada Lovelace",
            "email": "ada@example.com",
            "password": "correct-horse-battery"
        }
    })

class LoginRequest(_EmailBody):
    password: str = Field(min_length=1, max_length=128)

class ForgotPasswordRequest(_EmailBody):
    pass

class ResetPasswordRequest(BaseModel):
    """Body of ``POST /api/auth/reset``; the web form posts ``passwordConfirm``."""
    password: str = Field(min_length=PASSWORD_MIN_LENGTH, max_length=128)
    password_confirm: str = Field(alias="passwordConfirm", min_length=1, max_length=128)
    token: str = Field(min_length=1)

    model_config = ConfigDict(populate_by_name=True)

class AuthPayload(BaseModel):
    token: str
    user: UserRead
