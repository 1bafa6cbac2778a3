"""Auth schemas."""
from pydantic import BaseModel, EmailStr

from slotbook.models.account import AccountRole


class AccountCreate(BaseModel):
    first_name: str
    last_name: str
    email: EmailStr
    password: str
    role: AccountRole


class RegisterResponse(BaseModel):
    account_id: int
    message: str = "Account created. Please verify your email."
    verification_email_sent: bool


class AccountLogin(BaseModel):
    email: str
    password: str


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class VerifyEmailRequest(BaseModel):
    email: str
    code: str


class VerifyEmailResponse(BaseModel):
    account_id: int
    message: str = "Email verified successfully"


class ResendVerificationRequest(BaseModel):
    email: str


class AccountResponse(BaseModel):
    id: int
    first_name: str
    last_name: str
    email: str
    role: AccountRole
    verified: bool

    class Config:
        from_attributes = True
