from app.schemas.user import User, UserCreate, UserWithPermissions, UserSummary
from app.schemas.client import Client, ClientCreate, ClientUpdate, ClientSummary
from app.schemas.message import Message, MessageCreate
from app.schemas.case import (
    Case, CaseCreate, CaseUpdate, CaseResponse, CaseDetail, CaseFile,
    CaseParticipantUser, CaseParticipantClient,
    CaseParticipantUserCreate, CaseParticipantClientCreate,
)
from app.schemas.auth import (
    Token, TokenWithUser, UserLogin, RegisterRequest, RegisterViaInvite,
    ProfileUpdate, PasswordChange,
)
from app.schemas.invite import Invite, InviteCreate, InviteResponse
from app.schemas.permission import Permission, UserPermissionsUpdate
from app.schemas.realtime import RealtimeFrame

# Export all schemas
__all__ = [
    'User', 'UserCreate', 'UserWithPermissions', 'UserSummary',
    'Client', 'ClientCreate', 'ClientUpdate', 'ClientSummary',
    'Message', 'MessageCreate',
    'Case', 'CaseCreate', 'CaseUpdate', 'CaseResponse', 'CaseDetail', 'CaseFile',
    'CaseParticipantUser', 'CaseParticipantClient',
    'CaseParticipantUserCreate', 'CaseParticipantClientCreate',
    'Token', 'TokenWithUser', 'UserLogin', 'RegisterRequest', 'RegisterViaInvite',
    'ProfileUpdate', 'PasswordChange',
    'Invite', 'InviteCreate', 'InviteResponse',
    'Permission', 'UserPermissionsUpdate',
    'RealtimeFrame',
]
