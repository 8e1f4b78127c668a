from typing import Optional
from datetime import datetime
from uuid import UUID
from pydantic import BaseModel, Field
from app.schemas.client import ClientSummary
from app.schemas.user import UserSummary

class MessageCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=1000)
    case_id: UUID = Field(..., alias="caseId")
    receiver_client_id: UUID = Field(..., alias="receiverClientId")

    class Config:
        populate_by_name = True

class Message(BaseModel):
    id: UUID
    case_id: UUID
    content: str
    sender_user_id: Optional[UUID] = None
    sender_client_id: Optional[UUID] = None
    receiver_client_id: UUID
    viewed: bool
    viewed_at: Optional[datetime] = None
    created_at: datetime
    sender_user: Optional[UserSummary] = None
    sender_client: Optional[ClientSummary] = None
    receiver_client: Optional[ClientSummary] = None

    class Config:
        from_attributes = True
