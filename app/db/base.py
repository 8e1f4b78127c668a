from app.db.base_class import Base
from app.db.models import (  # noqa: F401
    Tenant, User, Permission, UserPermission, Client,
    Case, CaseParticipantUser, CaseParticipantClient, CaseFile,
    Message, Invite,
)

# All models are imported here for SQLAlchemy to discover them
