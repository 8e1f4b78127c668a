from app.db.models.tenant import Tenant
from app.db.models.user import User, UserRole, Permission, UserPermission
from app.db.models.client import Client
from app.db.models.case import (
    Case, CaseStatus, CaseUserRole, ClientParticipation,
    CaseParticipantUser, CaseParticipantClient, CaseFile,
)
from app.db.models.message import Message
from app.db.models.invite import Invite

# Export all models and enums
__all__ = [
    'Tenant',
    'User', 'UserRole', 'Permission', 'UserPermission',
    'Client',
    'Case', 'CaseStatus', 'CaseUserRole', 'ClientParticipation',
    'CaseParticipantUser', 'CaseParticipantClient', 'CaseFile',
    'Message',
    'Invite',
]
