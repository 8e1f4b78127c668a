from typing import List, Optional
from uuid import UUID
from pydantic import BaseModel

class Permission(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None

    class Config:
        from_attributes = True

class UserPermissionsUpdate(BaseModel):
    permissions: List[str]
