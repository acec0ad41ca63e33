"""
Email notifications for submission authors.
Uses fastapi-mail; the FastMail instance lives on request.app.state.mail.
"""
from typing import Optional, TYPE_CHECKING
from html import escape

from sqlalchemy.orm import Session

from database.models import User, Submission
from services.settings_service import SettingsService
from core.logger import logger
import config

if TYPE_CHECKING:
    from fastapi_mail import FastMail


def _wrap(title: str, body_html: str) -> str:
    return f"""
        <html>
        <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
            <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
                <h2 style="color: #3f51b5;">{escape(config.SMTP_FROM_NAME)}</h2>
                <h3>{escape(title)}</h3>
                {body_html}
                <p style="color: #666; font-size: 12px;">
                    You can change your notification preferences in your account settings.
                </p>
            </div>
        </body>
        </html>
        """


class EmailService:
    """Notification emails sent to submission authors."""

    @staticmethod
    def should_notify(db: Session, user: User, kind: str) -> bool:
        """
        Whether the user's notification settings allow this kind of email.

        Args:
            kind: "comment_notifications" or "selection_notifications"
        """
        settings = SettingsService.get_user_settings(db, user.user_id, "notifications")
        return bool(settings.get("email_notifications")) and bool(settings.get(kind))

    @staticmethod
    async def send(fm: "FastMail", to_email: str, subject: str, html_body: str) -> bool:
        """
        Send an HTML email.

        Returns:
            True if sent successfully, False otherwise
        """
        from fastapi_mail import MessageSchema, MessageType

        message = MessageSchema(
            subject=subject,
            recipients=[to_email],
            body=html_body,
            subtype=MessageType.html,
        )
        try:
            await fm.send_message(message)
            logger.info(f"Email '{subject}' sent to {to_email}")
            return True
        except Exception as e:
            logger.error(f"Failed to send email to {to_email}: {e}", exc_info=True)
            return False

    @staticmethod
    async def send_comment_notification(
        db: Session,
        fm: Optional["FastMail"],
        submission: Submission,
        commenter: User,
        comment_text: str
    ) -> bool:
        """Tell the author a reviewer commented on their submission."""
        author = submission.author
        if fm is None or author is None or author.user_id == commenter.user_id:
            return False
        if not EmailService.should_notify(db, author, "comment_notifications"):
            return False

        body = (
            f"<p>Hello {escape(author.first_name)},</p>"
            f"<p>{escape(commenter.full_name)} commented on your submission "
            f"<strong>{escape(submission.title)}</strong>:</p>"
            f'<blockquote style="border-left: 3px solid #ccc; padding-left: 10px;">{escape(comment_text)}</blockquote>'
        )
        return await EmailService.send(
            fm,
            author.email,
            f"New comment on \"{submission.title}\"",
            _wrap("New comment on your submission", body),
        )

    @staticmethod
    async def send_selection_notification(
        db: Session,
        fm: Optional["FastMail"],
        submission: Submission
    ) -> bool:
        """Tell the author their submission was selected for publication."""
        author = submission.author
        if fm is None or author is None:
            return False
        if not EmailService.should_notify(db, author, "selection_notifications"):
            return False

        body = (
            f"<p>Hello {escape(author.first_name)},</p>"
            f"<p>Congratulations! Your submission <strong>{escape(submission.title)}</strong> "
            "has been selected for publication in the university magazine.</p>"
        )
        return await EmailService.send(
            fm,
            author.email,
            f"Your submission \"{submission.title}\" was selected",
            _wrap("Submission selected", body),
        )
