from sqlalchemy import Column, Text, DateTime, ForeignKey, Uuid, UniqueConstraint
from sqlalchemy.orm import relationship
import uuid
from app.db.base_class import Base, utcnow

class Client(Base):
    __tablename__ = "clients"
    __table_args__ = (
        UniqueConstraint("tenant_id", "email", name="uq_client_tenant_email"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id"), nullable=False, index=True)
    # Set when the client has a login of their own
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=True, unique=True)
    first_name = Column(Text, nullable=False)
    last_name = Column(Text, nullable=False)
    email = Column(Text, nullable=True)
    phone_number = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    tenant = relationship("Tenant", back_populates="clients")
    user = relationship("User", back_populates="client")
