from typing import List, Optional
from datetime import datetime
from uuid import UUID
from pydantic import BaseModel, Field
from app.db.models.case import CaseStatus, CaseUserRole, ClientParticipation
from app.schemas.client import ClientSummary
from app.schemas.message import Message
from app.schemas.user import UserSummary

class CaseCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    status: CaseStatus = CaseStatus.open
    client_id: UUID = Field(..., alias="clientId")

    class Config:
        populate_by_name = True

class CaseUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    status: Optional[CaseStatus] = None

class CaseParticipantUserCreate(BaseModel):
    user_id: UUID = Field(..., alias="userId")
    role: CaseUserRole = CaseUserRole.support_lawyer

    class Config:
        populate_by_name = True

class CaseParticipantClientCreate(BaseModel):
    client_id: UUID = Field(..., alias="clientId")
    participation: ClientParticipation = ClientParticipation.other_contact

    class Config:
        populate_by_name = True

class CaseParticipantUser(BaseModel):
    user_id: UUID
    role: CaseUserRole
    user: Optional[UserSummary] = None

    class Config:
        from_attributes = True

class CaseParticipantClient(BaseModel):
    client_id: UUID
    participation: ClientParticipation
    client: Optional[ClientSummary] = None

    class Config:
        from_attributes = True

class CaseFile(BaseModel):
    id: UUID
    name: str
    url: str
    created_at: datetime

    class Config:
        from_attributes = True

class Case(BaseModel):
    id: UUID
    tenant_id: UUID
    title: str
    description: Optional[str] = None
    status: CaseStatus
    lawyer_primary_id: UUID
    client_primary_id: UUID
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

class CaseResponse(Case):
    lawyer_primary: Optional[UserSummary] = None
    client_primary: Optional[ClientSummary] = None
    participants_users: List[CaseParticipantUser] = []
    participants_clients: List[CaseParticipantClient] = []

class CaseDetail(CaseResponse):
    messages: List[Message] = []
    files: List[CaseFile] = []
