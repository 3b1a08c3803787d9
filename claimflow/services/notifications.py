"""Fire-and-forget notifications for claim routing events."""
from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError

from claimflow.models import Notification, db
from claimflow.services.email_service import send_claim_email

logger = logging.getLogger(__name__)

PENDING_APPROVAL = "pending_approval"
CLAIM_APPROVED = "claim_approved"
CLAIM_REJECTED = "claim_rejected"
CLAIM_SENT_BACK = "claim_sent_back"
CLAIM_SUBMITTED = "claim_submitted"


class NotificationEmitter:
    """Writes an in-app notification and, optionally, an email.

    Failures are logged and reported through the return value only; they never
    propagate to the routing step that triggered them.
    """

    def __init__(self, send_email: bool = True):
        self.send_email = send_email

    def notify(
        self,
        recipient_email: str,
        claim: Any,
        notification_type: str,
        title: str,
        message: str,
        recipient_name: Optional[str] = None,
    ) -> bool:
        try:
            db.session.add(
                Notification(
                    recipient_email=recipient_email,
                    claim_id=claim.id,
                    claim_number=claim.claim_number,
                    notification_type=notification_type,
                    title=title,
                    message=message,
                )
            )
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Failed to record {notification_type} notification for {recipient_email}: {str(e)}")
            return False

        logger.info(f"Notified {recipient_email} ({notification_type}) about claim {claim.claim_number}")
        if self.send_email:
            send_claim_email(recipient_email, title, message, claim.claim_number, recipient_name)
        return True

    def notify_employee(self, claim: Any, notification_type: str, title: str, message: str) -> bool:
        return self.notify(claim.employee_email, claim, notification_type, title, message, claim.employee_name)

    def pending_approval(self, approver_email: str, claim: Any, approver_name: Optional[str] = None) -> bool:
        submitter = claim.employee_name or claim.employee_email
        return self.notify(
            approver_email,
            claim,
            PENDING_APPROVAL,
            "New Claim Pending Your Approval",
            f"Claim {claim.claim_number} from {submitter} is pending your approval.",
            approver_name,
        )
