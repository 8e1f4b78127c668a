from sqlalchemy import Column, Text, DateTime, ForeignKey, Uuid, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.orm import relationship
import uuid
from enum import Enum
from app.db.base_class import Base, utcnow

class CaseStatus(str, Enum):
    open = "Open"
    in_progress = "In Progress"
    closed = "Closed"
    pending = "Pending"
    on_hold = "On Hold"

class CaseUserRole(str, Enum):
    lead_lawyer = "LeadLawyer"
    support_lawyer = "SupportLawyer"

class ClientParticipation(str, Enum):
    main_contact = "MainContact"
    other_contact = "OtherContact"

class Case(Base):
    __tablename__ = "cases"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id"), nullable=False, index=True)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    status = Column(SQLEnum(CaseStatus, name="case_status"), nullable=False, default=CaseStatus.open)
    lawyer_primary_id = Column(Uuid, ForeignKey("users.id"), nullable=False)
    client_primary_id = Column(Uuid, ForeignKey("clients.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    lawyer_primary = relationship("User")
    client_primary = relationship("Client")
    participants_users = relationship("CaseParticipantUser", back_populates="case", cascade="all, delete-orphan")
    participants_clients = relationship("CaseParticipantClient", back_populates="case", cascade="all, delete-orphan")
    messages = relationship(
        "Message",
        back_populates="case",
        cascade="all, delete-orphan",
        order_by="Message.created_at",
    )
    files = relationship("CaseFile", back_populates="case", cascade="all, delete-orphan")
    invites = relationship("Invite", back_populates="case", cascade="all, delete-orphan")

class CaseParticipantUser(Base):
    __tablename__ = "case_participant_users"
    __table_args__ = (
        UniqueConstraint("case_id", "user_id", name="uq_case_participant_user"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    case_id = Column(Uuid, ForeignKey("cases.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(SQLEnum(CaseUserRole, name="case_user_role"), nullable=False, default=CaseUserRole.support_lawyer)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    # Relationships
    case = relationship("Case", back_populates="participants_users")
    user = relationship("User")

class CaseParticipantClient(Base):
    __tablename__ = "case_participant_clients"
    __table_args__ = (
        UniqueConstraint("case_id", "client_id", name="uq_case_participant_client"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    case_id = Column(Uuid, ForeignKey("cases.id", ondelete="CASCADE"), nullable=False, index=True)
    client_id = Column(Uuid, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True)
    participation = Column(
        SQLEnum(ClientParticipation, name="client_participation"),
        nullable=False,
        default=ClientParticipation.other_contact,
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    # Relationships
    case = relationship("Case", back_populates="participants_clients")
    client = relationship("Client")

class CaseFile(Base):
    __tablename__ = "case_files"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id"), nullable=False)
    case_id = Column(Uuid, ForeignKey("cases.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(Text, nullable=False)
    url = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    # Relationships
    case = relationship("Case", back_populates="files")
