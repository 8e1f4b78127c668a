from sqlalchemy import Column, Text, Boolean, DateTime, ForeignKey, Uuid, CheckConstraint
from sqlalchemy.orm import relationship
import uuid
from app.db.base_class import Base, utcnow

class Message(Base):
    __tablename__ = "messages"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id"), nullable=False, index=True)
    case_id = Column(Uuid, ForeignKey("cases.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    sender_user_id = Column(Uuid, ForeignKey("users.id"), nullable=True)
    sender_client_id = Column(Uuid, ForeignKey("clients.id"), nullable=True)
    receiver_client_id = Column(Uuid, ForeignKey("clients.id"), nullable=False)
    viewed = Column(Boolean, nullable=False, default=False)
    viewed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    # A message is sent either by an office user or by a client, never both
    __table_args__ = (
        CheckConstraint(
            '(sender_user_id IS NOT NULL AND sender_client_id IS NULL) OR '
            '(sender_user_id IS NULL AND sender_client_id IS NOT NULL)',
            name='message_single_sender'
        ),
    )

    # Relationships
    case = relationship("Case", back_populates="messages")
    sender_user = relationship("User", foreign_keys=[sender_user_id])
    sender_client = relationship("Client", foreign_keys=[sender_client_id])
    receiver_client = relationship("Client", foreign_keys=[receiver_client_id])
