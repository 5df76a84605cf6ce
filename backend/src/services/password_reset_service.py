"""
Password reset via emailed single-use tokens.
"""

import logging
import secrets
from datetime import timedelta

import httpx
from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from core.config import FRONTEND_URL, PASSWORD_RESET_TOKEN_EXPIRE_HOURS
from core.constants import PASSWORD_RESET_TOKEN_BYTES
from core.tenant import TenantScope, set_current_clinic
from models import PasswordResetToken, User
from services.auth_service import normalize_email
from services.email_service import EmailService
from services.jwt_service import jwt_service
from utils.datetime_utils import utc_now

logger = logging.getLogger(__name__)

INVALID_TOKEN_DETAIL = "Invalid or expired token"


class PasswordResetService:
    """Request and consume password reset tokens."""

    @staticmethod
    async def request_reset(db: Session, email: str) -> None:
        """
        Email a reset link if the account exists.

        Returns the same way whether or not the email is known, so callers
        cannot discover which addresses are registered.
        """
        user = db.query(User).filter(User.email == normalize_email(email)).first()
        if user is None or not user.is_active:
            logger.info("Password reset requested for unknown or inactive account")
            return

        set_current_clinic(db, user.clinic_id)
        scope = TenantScope(db, user.clinic_id)
        reset = PasswordResetToken(
            token=secrets.token_hex(PASSWORD_RESET_TOKEN_BYTES),
            user_id=user.id,
            expires_at=utc_now() + timedelta(hours=PASSWORD_RESET_TOKEN_EXPIRE_HOURS),
        )
        scope.add(reset)
        scope.commit()

        reset_url = f"{FRONTEND_URL}/reset-password?token={reset.token}"
        html = EmailService.render(
            "emails/password_reset.html",
            first_name=user.first_name,
            reset_url=reset_url,
            expires_hours=PASSWORD_RESET_TOKEN_EXPIRE_HOURS,
        )
        try:
            await EmailService.send_email(
                user.email,
                "Reset your password",
                html,
                text=f"Reset your password: {reset_url}",
            )
        except httpx.HTTPError as e:
            # The caller sees the same response as for an unknown email
            logger.exception(f"Failed to send password reset email for user {user.id}: {e}")
            return
        logger.info(f"Issued password reset token {reset.id} for user {user.id}")

    @staticmethod
    def reset_password(db: Session, *, token: str, password: str) -> None:
        """
        Consume a reset token and set the new password.

        Raises:
            HTTPException: 400 if the token is unknown, used or expired
        """
        reset = db.query(PasswordResetToken).filter(PasswordResetToken.token == token).with_for_update().first()
        if reset is None or not reset.is_active:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=INVALID_TOKEN_DETAIL)

        set_current_clinic(db, reset.clinic_id)
        scope = TenantScope(db, reset.clinic_id)
        user = scope.get(User, reset.user_id)
        if user is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=INVALID_TOKEN_DETAIL)

        user.password_hash = jwt_service.hash_password(password)
        reset.mark_used()
        db.commit()
        logger.info(f"Password reset completed for user {user.id}")
