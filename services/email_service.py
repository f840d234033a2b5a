"""
Email service for sending emails using Mailgun API.
"""

import httpx
from html import escape
from typing import Any, Dict, List, Optional, Sequence, Union

from core.config import Settings
from core.exceptions import NotificationError
from core.logging import get_logger


logger = get_logger(__name__)

DEFAULT_MAILGUN_API_URL = "https://api.mailgun.net/v3/messages"

TIMELINE_LABELS = {
    "asap": "ASAP - Has an event!",
    "soon": "Within 3-6 months",
    "year": "Within a year",
    "flexible": "No rush",
}

INTEREST_LABELS = {
    "whiter": "Brighter, whiter smile",
    "straighter": "Straighter teeth",
    "healthier": "Healthier gums & teeth",
    "complete": "Replace missing teeth",
    "confident": "Feel more confident",
}


def quiz_lead_subject(first_name: Optional[str], smile_type_name: Optional[str]) -> str:
    return f"New Quiz Lead: {first_name or 'Anonymous'} - {smile_type_name or 'Smile Assessment'}"


class EmailService:
    """Email service for sending emails via Mailgun."""

    def __init__(self, config: Settings):
        self.config = config
        self.api_key = config.MAILGUN_API_KEY
        self.api_url = config.MAILGUN_API_URL or DEFAULT_MAILGUN_API_URL
        self.timeout = config.MAILGUN_TIMEOUT_SECONDS
        self.from_email = self._sender(config)

    @staticmethod
    def _sender(config: Settings) -> str:
        if not config.MAIL_FROM:
            return f"{config.SITE_NAME} <postmaster@localhost>"
        if "<" in config.MAIL_FROM:
            return config.MAIL_FROM
        return f"{config.SITE_NAME} <{config.MAIL_FROM}>"

    async def send_email_via_mailgun(
        self,
        to: List[str],
        subject: str,
        text: Optional[str] = None,
        html: Optional[str] = None,
        from_email: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Union[str, int]]:
        """
        Send an email using Mailgun's API.

        Raises NotificationError when mail is not configured or the send fails.
        """
        if not self.api_key:
            raise NotificationError("Mailgun API key is not configured", reason="not_configured", retryable=False)

        data = {
            "from": from_email or self.from_email,
            "to": ", ".join(to),
            "subject": subject,
        }
        if text:
            data["text"] = text
        if html:
            data["html"] = html

        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    self.api_url,
                    auth=("api", self.api_key),
                    data=data,
                    headers=headers or {},
                    timeout=self.timeout,
                )
                response.raise_for_status()
                result = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Mailgun API error: {e.response.status_code} - {e.response.text}")
            # 4xx other than rate limiting will not succeed on retry
            retryable = e.response.status_code >= 500 or e.response.status_code == 429
            raise NotificationError(
                f"Failed to send email: {e.response.text}",
                retryable=retryable,
                detail=str(e.response.status_code),
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"Error sending email: {str(e)}")
            raise NotificationError(f"Failed to send email: {str(e)}", detail=type(e).__name__) from e

        logger.info(f"Email sent successfully to {to}. Message ID: {result.get('id', 'unknown')}")
        return result

    def render_quiz_notification(
        self,
        first_name: Optional[str],
        email: Optional[str],
        phone: Optional[str],
        smile_type_name: Optional[str],
        primary_interest: Optional[str],
        timeline: Optional[str],
        recommendations: Sequence[str],
    ) -> str:
        # respondent input goes into markup escaped
        timeline_text = escape(TIMELINE_LABELS.get(timeline, timeline) or "Not specified")
        interest_text = escape(INTEREST_LABELS.get(primary_interest, primary_interest) or "Not specified")
        name_text = escape(first_name or "Not provided")
        smile_text = escape(smile_type_name or "Not determined")
        email = escape(email) if email else None
        phone = escape(phone) if phone else None
        timeline_badge = "#fef3c7" if timeline == "asap" else "#e0f2fe"

        email_cell = f'<a href="mailto:{email}" style="color: #0077B6;">{email}</a>' if email else "Not provided"
        phone_cell = f'<a href="tel:{phone}" style="color: #0077B6;">{phone}</a>' if phone else "Not provided"

        recommendations_block = ""
        if recommendations:
            tags = "".join(
                f'<span style="background: #e0f2fe; color: #0369a1; padding: 4px 10px; '
                f'border-radius: 4px; font-size: 13px;">{escape(name)}</span>'
                for name in recommendations
            )
            recommendations_block = f"""
            <div style="margin-top: 20px;">
              <p style="font-weight: bold; margin-bottom: 10px;">Recommended Treatments:</p>
              <div>{tags}</div>
            </div>"""

        row = 'style="padding: 10px 0; border-bottom: 1px solid #e0e0e0;'
        return f"""
        <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
          <div style="background: linear-gradient(135deg, #14b8a6, #06b6d4); color: white; padding: 20px; text-align: center;">
            <h1 style="margin: 0; font-size: 24px;">New Smile Assessment Completed!</h1>
          </div>
          <div style="padding: 30px; background: #f8f9fa;">
            <div style="background: #d1fae5; padding: 15px; border-radius: 8px; margin-bottom: 20px;">
              <strong style="color: #166534;">Smile Type:</strong> {smile_text}
            </div>
            <table style="width: 100%; border-collapse: collapse;">
              <tr><td {row} font-weight: bold; width: 140px;">Name:</td><td {row}">{name_text}</td></tr>
              <tr><td {row} font-weight: bold;">Email:</td><td {row}">{email_cell}</td></tr>
              <tr><td {row} font-weight: bold;">Phone:</td><td {row}">{phone_cell}</td></tr>
              <tr><td {row} font-weight: bold;">Primary Interest:</td><td {row}">{interest_text}</td></tr>
              <tr><td {row} font-weight: bold;">Timeline:</td><td {row}">
                <span style="background: {timeline_badge}; padding: 2px 8px; border-radius: 4px; font-size: 13px;">{timeline_text}</span>
              </td></tr>
            </table>{recommendations_block}
          </div>
          <div style="padding: 20px; background: #e9ecef; text-align: center; font-size: 12px; color: #6c757d;">
            <a href="{self.config.SITE_URL}/admin/quiz" style="color: #0077B6;">View all quiz submissions in admin panel</a>
          </div>
        </div>
        """

    async def send_quiz_notification(self, submission: Any, recommendations: Sequence[str] = ()) -> Dict[str, Union[str, int]]:
        """
        Notify the practice about a completed quiz.

        ``submission`` is a stored submission (model or read schema);
        ``recommendations`` are the display names of the recommended procedures.
        """
        if not self.api_key:
            raise NotificationError("Mailgun API key is not configured", reason="not_configured", retryable=False)
        if not self.config.NOTIFICATION_EMAIL:
            raise NotificationError("No notification recipient configured", reason="no_recipient", retryable=False)

        html = self.render_quiz_notification(
            first_name=submission.first_name,
            email=submission.email,
            phone=submission.phone,
            smile_type_name=submission.smile_type_name,
            primary_interest=submission.primary_interest,
            timeline=submission.timeline,
            recommendations=recommendations,
        )
        result = await self.send_email_via_mailgun(
            to=[self.config.NOTIFICATION_EMAIL],
            subject=quiz_lead_subject(submission.first_name, submission.smile_type_name),
            html=html,
        )
        logger.info("Quiz notification email sent", submission_id=getattr(submission, "id", None))
        return result
