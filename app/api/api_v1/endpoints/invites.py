from typing import Any
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from html import escape
import logging
from app.api.api_v1.endpoints.auth import token_response
from app.api.deps import get_notifier
from app.core.auth import Identity, get_current_identity
from app.core.config import settings
from app.core.database import get_db
from app.core.email import EmailNotifier
from app.core.exceptions import NotFound
from app.core.permissions import CAN_INVITE_CLIENTS
from app.crud import case as case_crud
from app.crud import invite as invite_crud
from app.schemas.auth import RegisterViaInvite, TokenWithUser
from app.schemas.invite import Invite, InviteCreate, InviteResponse
from app.services.access_control import AccessMode, require_case_access, require_permission
from uuid import UUID

logger = logging.getLogger(__name__)
router = APIRouter()

@router.post(
    "/cases/{lawsuit_id}/invite-client",
    response_model=InviteResponse,
    status_code=status.HTTP_201_CREATED,
)
async def invite_client_to_case(
    *,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
    notifier: EmailNotifier = Depends(get_notifier),
    lawsuit_id: UUID,
    invite_in: InviteCreate
) -> Any:
    """
    Invite a client by e-mail to create an account attached to a case.

    The invite is kept even when the e-mail cannot be delivered;
    ``email_sent`` reports the outcome.
    """
    require_permission(identity, CAN_INVITE_CLIENTS)
    await require_case_access(db, identity, lawsuit_id, AccessMode.write)

    db_case = await case_crud.get_case(db, lawsuit_id, identity.tenant_id)
    if not db_case:
        raise NotFound("Case not found.")

    invite = await invite_crud.create_invite(db, db_case, invite_in.email)
    link = invite_crud.invite_link(invite)

    subject = f'You have been invited to follow the case "{db_case.title}"'
    text_body = (
        "Hello,\n\n"
        f'You have been invited to follow the case "{db_case.title}".\n\n'
        f"Create your account with the link below:\n\n{link}\n\n"
        f"This link expires in {settings.INVITE_EXPIRE_HOURS} hours.\n"
    )
    html_body = (
        "<p>Hello,</p>"
        f"<p>You have been invited to follow the case <strong>{escape(db_case.title)}</strong>.</p>"
        f'<p><a href="{escape(link)}">Accept the invite and create your account</a></p>'
        f"<p>This link expires in {settings.INVITE_EXPIRE_HOURS} hours.</p>"
    )
    email_sent = await notifier.send(invite.email, subject, text_body, html_body)
    if not email_sent:
        logger.error(f"Invite {invite.id} created but the e-mail could not be delivered")

    return InviteResponse(invite=Invite.model_validate(invite), email_sent=email_sent)

@router.post("/register/invite", response_model=TokenWithUser, status_code=status.HTTP_201_CREATED)
async def register_via_invite(
    *,
    db: AsyncSession = Depends(get_db),
    registration: RegisterViaInvite
) -> Any:
    """
    Redeem an invite: create the client account and log it in.
    """
    logger.info(f"Invite redemption requested with token {registration.token[:8]}...")
    user = await invite_crud.redeem_invite(db, registration)
    return await token_response(db, user)
