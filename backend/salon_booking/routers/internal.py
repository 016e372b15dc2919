# backend/salon_booking/routers/internal.py
"""
Internal endpoints for trusted callers (cron).

POST /internal/cleanup-holds - delete expired holds
POST /internal/send-reminders - emit day-before reminders
Access: Authorization: Bearer <CRON_SECRET>. Disabled while CRON_SECRET is empty.
"""

import logging

from fastapi import APIRouter, Depends, Header
from sqlalchemy.orm import Session

from ..config import settings
from ..database import get_db
from ..errors import Unauthorized
from ..services.holds import reap_expired_holds
from ..services.reminders import send_due_reminders
from ..utils.tokens import tokens_match

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/internal", tags=["internal"])


def require_cron_secret(authorization: str | None = Header(None)) -> None:
    if not settings.cron_secret:
        raise Unauthorized()
    expected = f"Bearer {settings.cron_secret}"
    if not tokens_match(expected, authorization):
        logger.warning("Rejected internal call with invalid credentials")
        raise Unauthorized()


@router.post("/cleanup-holds", dependencies=[Depends(require_cron_secret)])
def cleanup_holds(db: Session = Depends(get_db)):
    deleted = reap_expired_holds(db)
    return {"success": True, "deleted": deleted}


@router.post("/send-reminders", dependencies=[Depends(require_cron_secret)])
def send_reminders(db: Session = Depends(get_db)):
    sent = send_due_reminders(db)
    return {"success": True, "sent": sent}
