from datetime import datetime
from uuid import UUID
from pydantic import BaseModel, EmailStr

class InviteCreate(BaseModel):
    email: EmailStr

class Invite(BaseModel):
    id: UUID
    case_id: UUID
    email: str
    expires_at: datetime
    is_used: bool

    class Config:
        from_attributes = True

class InviteResponse(BaseModel):
    invite: Invite
    email_sent: bool
