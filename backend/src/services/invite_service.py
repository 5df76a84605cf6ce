"""
Staff invitations.

An admin invites an email address with a role; the invitee accepts with the
emailed token and chooses a password. Tokens expire and can be used once:
acceptance locks the token row and re-checks it inside the transaction that
creates the account.
"""

import logging
import secrets
from datetime import timedelta
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from core.config import FRONTEND_URL, INVITE_TOKEN_EXPIRE_DAYS
from core.constants import INVITE_TOKEN_BYTES, ROLE_DOCTOR
from core.tenant import TenantScope, set_current_clinic
from models import Doctor, InviteToken, User
from services.auth_service import AuthService, normalize_email
from services.email_service import EmailService
from utils.datetime_utils import utc_now

logger = logging.getLogger(__name__)

INVALID_INVITE_DETAIL = "Invalid or expired invite"


class InviteService:
    """Create and accept staff invitations."""

    @staticmethod
    async def create_invite(
        scope: TenantScope,
        *,
        email: str,
        role: str,
        invited_by_id: Optional[int] = None,
        inviter_name: str = "",
    ) -> InviteToken:
        """Persist an invite for the scope's clinic and email the accept link."""
        invite = InviteToken(
            token=secrets.token_hex(INVITE_TOKEN_BYTES),
            email=normalize_email(email),
            role=role,
            invited_by_id=invited_by_id,
            expires_at=utc_now() + timedelta(days=INVITE_TOKEN_EXPIRE_DAYS),
        )
        scope.add(invite)
        scope.commit()

        clinic = scope.get_clinic()
        accept_url = f"{FRONTEND_URL}/invite/accept?token={invite.token}"
        html = EmailService.render(
            "emails/invite.html",
            clinic_name=clinic.name,
            inviter_name=inviter_name or "An administrator",
            role=role,
            accept_url=accept_url,
            expires_days=INVITE_TOKEN_EXPIRE_DAYS,
        )
        await EmailService.send_email(
            invite.email,
            f"You're invited to join {clinic.name}",
            html,
            text=f"Accept your invitation: {accept_url}",
        )
        logger.info(f"Created invite {invite.id} ({role}) for clinic {scope.clinic_id}")
        return invite

    @staticmethod
    def accept_invite(
        db: Session,
        *,
        token: str,
        first_name: str,
        last_name: str,
        password: str,
    ) -> User:
        """
        Consume an invite and create the invited user (plus a doctor profile for doctors).

        Raises:
            HTTPException: 400 if the token is unknown, used or expired,
                or the email has been registered since
        """
        invite = db.query(InviteToken).filter(InviteToken.token == token).with_for_update().first()
        if invite is None or not invite.is_active:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=INVALID_INVITE_DETAIL)

        set_current_clinic(db, invite.clinic_id)
        scope = TenantScope(db, invite.clinic_id)
        user = AuthService.create_user_account(
            scope,
            email=invite.email,
            password=password,
            first_name=first_name,
            last_name=last_name,
            role=invite.role,
        )
        if invite.role == ROLE_DOCTOR:
            scope.add(Doctor(user_id=user.id, availability={}))

        invite.mark_used()
        db.commit()
        logger.info(f"Invite {invite.id} accepted; created user {user.id} in clinic {invite.clinic_id}")
        return user
