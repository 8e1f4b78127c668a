from dataclasses import dataclass
from typing import List, Optional, Tuple, Union
from uuid import UUID
from sqlalchemy import select, update, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.exc import SQLAlchemyError
import logging
from app.core.config import settings
from app.core.exceptions import ValidationError
from app.db.base_class import utcnow
from app.db.models import Case, Message

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserSender:
    """An office user (lawyer or admin) acting in a case thread."""
    user_id: UUID


@dataclass(frozen=True)
class ClientSender:
    """A client acting in a case thread through their linked login."""
    client_id: UUID


SenderRef = Union[UserSender, ClientSender]


def _message_options():
    return (
        selectinload(Message.sender_user),
        selectinload(Message.sender_client),
        selectinload(Message.receiver_client),
    )


def validate_content(content: str) -> str:
    if not content:
        raise ValidationError("Message content cannot be empty.")
    if len(content) > settings.MESSAGE_MAX_LENGTH:
        raise ValidationError(f"Message content cannot exceed {settings.MESSAGE_MAX_LENGTH} characters.")
    return content


async def get_message(db: AsyncSession, message_id: UUID, tenant_id: UUID) -> Optional[Message]:
    """
    Get a message of the tenant with sender and receiver loaded.
    """
    result = await db.execute(
        select(Message)
        .options(*_message_options())
        .where(Message.id == message_id, Message.tenant_id == tenant_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_message_for_notification(db: AsyncSession, message_id: UUID) -> Optional[Message]:
    """
    Fresh read of a message, its case and its receiver for the unread-alert check.
    """
    result = await db.execute(
        select(Message)
        .options(selectinload(Message.case), selectinload(Message.receiver_client))
        .where(Message.id == message_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def create_message(
    db: AsyncSession,
    content: str,
    case_id: UUID,
    tenant_id: UUID,
    sender: SenderRef,
    receiver_client_id: UUID,
) -> Message:
    """
    Persist a new unviewed message and return it with display fields loaded.
    """
    validate_content(content)

    db_message = Message(
        content=content,
        case_id=case_id,
        tenant_id=tenant_id,
        receiver_client_id=receiver_client_id,
        viewed=False,
        created_at=utcnow(),
    )
    if isinstance(sender, UserSender):
        db_message.sender_user_id = sender.user_id
    elif isinstance(sender, ClientSender):
        db_message.sender_client_id = sender.client_id
    else:
        raise TypeError(f"Unsupported sender reference: {sender!r}")

    try:
        db.add(db_message)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error in create_message: {e}")
        raise

    logger.info(f"Message {db_message.id} created in case {case_id}")
    return await get_message(db, db_message.id, tenant_id)


async def mark_viewed(db: AsyncSession, message_id: UUID, tenant_id: UUID) -> Tuple[Optional[Message], bool]:
    """
    Flip a message from unviewed to viewed with a single conditional update.

    Returns the current message and whether this call performed the
    transition. Concurrent callers race on the ``viewed = false`` predicate,
    so exactly one of them sees ``True``.
    """
    try:
        result = await db.execute(
            update(Message)
            .where(
                Message.id == message_id,
                Message.tenant_id == tenant_id,
                Message.viewed.is_(False),
            )
            .values(viewed=True, viewed_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error in mark_viewed: {e}")
        raise

    transitioned = result.rowcount == 1
    return await get_message(db, message_id, tenant_id), transitioned


async def list_by_case(
    db: AsyncSession,
    case_id: UUID,
    tenant_id: UUID,
    caller: SenderRef,
) -> List[Message]:
    """
    Messages of a case in creation order, limited to what the caller may see.

    Office users see the whole thread; a client only sees messages they sent
    or that were addressed to them.
    """
    query = (
        select(Message)
        .join(Case, Case.id == Message.case_id)
        .options(*_message_options())
        .where(
            Message.case_id == case_id,
            Message.tenant_id == tenant_id,
            Case.tenant_id == tenant_id,
        )
    )
    if isinstance(caller, ClientSender):
        query = query.where(
            or_(
                Message.receiver_client_id == caller.client_id,
                Message.sender_client_id == caller.client_id,
            )
        )
    query = query.order_by(Message.created_at.asc(), Message.id.asc())

    result = await db.execute(query)
    return list(result.scalars().all())
