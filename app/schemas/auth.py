from typing import Optional
from pydantic import BaseModel, EmailStr, Field
from app.schemas.user import UserCreate, UserWithPermissions

class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"

class TokenWithUser(Token):
    user: UserWithPermissions

class UserLogin(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=255)

class RegisterRequest(UserCreate):
    tenant_name: str = Field(..., min_length=1, max_length=255)

class RegisterViaInvite(BaseModel):
    token: str = Field(..., min_length=1, max_length=255)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=8, max_length=255)
    phone_number: Optional[str] = Field(None, min_length=5, max_length=20)

class ProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)

class PasswordChange(BaseModel):
    current_password: str = Field(..., min_length=1, max_length=255)
    new_password: str = Field(..., min_length=8, max_length=255)
