from typing import List, Optional
from pydantic import BaseModel, EmailStr, Field
from datetime import datetime
from uuid import UUID
from app.db.models.user import UserRole

class UserBase(BaseModel):
    email: EmailStr
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)

class UserCreate(UserBase):
    password: str = Field(..., min_length=8, max_length=255)

class User(BaseModel):
    id: UUID
    tenant_id: UUID
    email: EmailStr
    first_name: str
    last_name: str
    role: UserRole
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True

class UserWithPermissions(User):
    permissions: List[str] = []

class UserSummary(BaseModel):
    id: UUID
    first_name: str
    last_name: str
    email: Optional[str] = None

    class Config:
        from_attributes = True
