"""
Fieldforce - Routes Email
Manual email triggers over the SendGrid helpers. Admin-only, except the
application acknowledgement used by the public application form.
"""

import logging
from fastapi import APIRouter, Depends

import email_service
from models.email import (
    SendEmailRequest,
    ApprovalEmailRequest,
    RejectionEmailRequest,
    ApplicationReceivedEmailRequest,
)
from routes.auth import require_admin
from routes.mr_requests import DEFAULT_REJECTION_REASON
from services import api_response
from services.permissions import Identity

logger = logging.getLogger("email_routes")

router = APIRouter(prefix="/email", tags=["Email"])


def _result(result: dict, sent_message: str, failed_message: str):
    if result.get("success"):
        return api_response.success(result, sent_message)
    logger.error(f"[EMAIL] {failed_message}: {result.get('error')}")
    return api_response.error(failed_message, 500, result)


@router.post("/send")
async def send_email(data: SendEmailRequest, user: Identity = Depends(require_admin)):
    logger.info(f"[EMAIL] Manual send to {data.to} by={user.id}")
    result = await email_service.send_email(data.to, data.subject, data.htmlContent)
    return _result(result, "Email sent successfully", "Failed to send email")


@router.post("/approval")
async def send_approval_email(data: ApprovalEmailRequest, user: Identity = Depends(require_admin)):
    result = await email_service.send_approval_email(data.email, data.tempPassword)
    return _result(result, "Approval email sent successfully", "Failed to send approval email")


@router.post("/rejection")
async def send_rejection_email(data: RejectionEmailRequest, user: Identity = Depends(require_admin)):
    result = await email_service.send_rejection_email(
        data.email,
        data.name or "Applicant",
        data.reason or DEFAULT_REJECTION_REASON,
    )
    return _result(result, "Rejection email sent successfully", "Failed to send rejection email")


@router.post("/application-received")
async def send_application_received_email(data: ApplicationReceivedEmailRequest):
    result = await email_service.send_application_received_email(data.email, data.name)
    return _result(
        result,
        "Application received email sent successfully",
        "Failed to send application received email",
    )
