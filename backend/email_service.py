"""
SendGrid email service for Ajaka Pharma field force
- MR application received
- MR application approved (one-time password + login link)
- MR application rejected
"""

import asyncio
import html
import logging
from datetime import datetime, timezone
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail, Email, To, Content

from config import SENDGRID_API_KEY, SENDER_EMAIL, SENDER_NAME, FRONTEND_URL

logger = logging.getLogger("email_service")


class EmailService:
    """Central email sender"""

    def __init__(self):
        self.api_key = SENDGRID_API_KEY
        self.sender = SENDER_EMAIL
        self.sender_name = SENDER_NAME

    def _send_email(self, to_email: str, subject: str, html_content: str) -> dict:
        """Send one email through SendGrid. Never raises."""
        if not self.api_key:
            logger.warning(f"[EMAIL] SENDGRID_API_KEY not configured, email to {to_email} not sent: {subject}")
            return {"success": False, "error": "Email service not configured"}

        try:
            message = Mail(
                from_email=Email(self.sender, self.sender_name),
                to_emails=To(to_email),
                subject=subject,
                html_content=Content("text/html", html_content)
            )

            sg = SendGridAPIClient(self.api_key)
            response = sg.send(message)

            if response.status_code in [200, 202]:
                message_id = response.headers.get("X-Message-Id") if response.headers else None
                logger.info(f"[EMAIL] Sent to {to_email}: {subject}")
                return {"success": True, "messageId": message_id}
            logger.error(f"[EMAIL] SendGrid status {response.status_code} for {to_email}")
            return {"success": False, "error": f"SendGrid status {response.status_code}"}

        except Exception as e:
            logger.error(f"[EMAIL] Exception sending to {to_email}: {str(e)}")
            return {"success": False, "error": str(e)}

    # ==================== TEMPLATES ====================

    def _layout(self, color: str, title: str, subtitle: str, body: str) -> str:
        year = datetime.now(timezone.utc).year
        return f"""
        <!DOCTYPE html>
        <html>
        <head><meta charset="UTF-8"></head>
        <body style="margin: 0; padding: 0; font-family: Arial, sans-serif;">
            <div style="max-width: 600px; margin: 0 auto; background: #ffffff;">
                <div style="background: {color}; padding: 30px; text-align: center;">
                    <h1 style="color: white; margin: 0; font-size: 26px;">{title}</h1>
                    <p style="color: #f1f5f9; margin: 10px 0 0 0;">{subtitle}</p>
                </div>
                <div style="padding: 30px; background: #f8fafc; color: #334155; line-height: 1.6;">
                    {body}
                    <p>Best regards,<br><strong>{self.sender_name} Admin Team</strong></p>
                </div>
                <div style="background: {color}; padding: 20px; text-align: center;">
                    <p style="color: #f1f5f9; margin: 0; font-size: 14px;">&copy; {year} {self.sender_name}. All rights reserved.</p>
                </div>
            </div>
        </body>
        </html>
        """

    def application_received_html(self, name: str) -> str:
        return self._layout(
            "#2563eb",
            "Application Received",
            "Medical Representative Program",
            f"""
            <p>Dear {html.escape(name)},</p>
            <p>Thank you for applying for the Medical Representative position at {self.sender_name}.
            Our team will review your application and get back to you shortly.</p>
            """,
        )

    def approval_html(self, email: str, temp_password: str) -> str:
        return self._layout(
            "#16a34a",
            "Congratulations!",
            "Your MR account is approved",
            f"""
            <p>Your application for the Medical Representative position at {self.sender_name} has been approved.</p>
            <div style="background: #dcfce7; padding: 20px; border-radius: 8px; border-left: 4px solid #16a34a;">
                <p><strong>Website:</strong> {FRONTEND_URL}/login</p>
                <p><strong>Email:</strong> {html.escape(email)}</p>
                <p><strong>Temporary Password:</strong> <code>{temp_password}</code></p>
            </div>
            <p style="color: #92400e;">Please change your password after your first login.</p>
            """,
        )

    def rejection_html(self, name: str, reason: str) -> str:
        return self._layout(
            "#dc2626",
            "Application Update",
            "Medical Representative Program",
            f"""
            <p>Dear {html.escape(name)},</p>
            <p>Thank you for your interest in {self.sender_name}. After careful review we are unable to
            move forward with your application at this time.</p>
            <p><strong>Reason:</strong> {html.escape(reason)}</p>
            """,
        )


email_service = EmailService()


async def send_email(to: str, subject: str, html: str) -> dict:
    """Non-blocking wrapper; the SendGrid client is synchronous."""
    return await asyncio.to_thread(email_service._send_email, to, subject, html)


async def send_application_received_email(email: str, name: str) -> dict:
    return await send_email(
        email,
        f"Application Received - {SENDER_NAME}",
        email_service.application_received_html(name),
    )


async def send_approval_email(email: str, temp_password: str) -> dict:
    return await send_email(
        email,
        f"Your MR Account is Approved - {SENDER_NAME}",
        email_service.approval_html(email, temp_password),
    )


async def send_rejection_email(email: str, name: str, reason: str) -> dict:
    return await send_email(
        email,
        f"Application Status Update - {SENDER_NAME}",
        email_service.rejection_html(name, reason),
    )
