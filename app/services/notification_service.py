# app/services/notification_service.py
import logging
from html import escape

from fastapi import Request

from app.core.email_client import EmailClient

logger = logging.getLogger(__name__)

TEAM_SIGNATURE = "The Inshuti y'Umuryango Team"


class Notifier:
    """
    Transactional emails (welcome, group join decisions).

    Fire-and-forget:
      - if SMTP is not configured, the email is skipped with a warning
      - any send failure is logged and swallowed so the calling
        workflow (registration, join approval) never fails because of email
    """

    def __init__(self, client: EmailClient):
        self.client = client

    # ---- internal helpers ----

    def _deliver(self, kind: str, to_email: str, subject: str, text: str, html: str) -> None:
        if not self.client.is_configured:
            logger.warning(f"Email service not configured - skipping {kind} email")
            return
        try:
            self.client.send_email(
                to_email=to_email,
                subject=subject,
                text_body=text,
                html_body=html,
            )
            logger.info(f"{kind.capitalize()} email sent to {to_email}")
        except Exception as e:
            logger.error(f"Error sending {kind} email to {to_email}: {e}")

    @staticmethod
    def _wrap_html(body: str) -> str:
        return (
            '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
            f"{body}"
            f"<p>Best regards,<br>{TEAM_SIGNATURE}</p>"
            "</div>"
        )

    # ---- public operations ----

    def send_welcome(self, name: str, email: str) -> None:
        subject = "Welcome to Our Platform!"
        text = (
            f"Hi {name},\n\n"
            "Thank you for joining our platform. Your account has been created successfully.\n"
            "You can now start exploring and joining groups that interest you.\n\n"
            f"Best regards,\n{TEAM_SIGNATURE}"
        )
        html = self._wrap_html(
            '<h2 style="color: #333;">Inshuti y\'umuryango!</h2>'
            f"<p>Hi {escape(name)},</p>"
            "<p>Thank you for joining our platform. Your account has been created successfully.</p>"
            "<p>You can now start exploring and joining groups that interest you.</p>"
            "<p>If you have any questions, feel free to reach out to our support team.</p>"
        )
        self._deliver("welcome", email, subject, text, html)

    def send_group_approval(
        self,
        name: str,
        email: str,
        group_name: str,
        link: str | None,
    ) -> None:
        subject = f"You've been approved to join {group_name}!"
        link_line = f"Visit the group: {link}\n" if link else ""
        text = (
            f"Hi {name},\n\n"
            f"Great news! Your request to join the group {group_name} has been approved.\n"
            f"{link_line}\n"
            f"Best regards,\n{TEAM_SIGNATURE}"
        )
        link_html = (
            f'<p><a href="{escape(link)}">Visit Group</a></p>' if link else ""
        )
        html = self._wrap_html(
            '<h2 style="color: #4CAF50;">Congratulations!</h2>'
            f"<p>Hi {escape(name)},</p>"
            "<p>Great news! Your request to join the group "
            f"<strong>{escape(group_name)}</strong> has been approved.</p>"
            "<p>You can now access the group and start participating in discussions.</p>"
            f"{link_html}"
        )
        self._deliver("group approval", email, subject, text, html)

    def send_group_rejection(self, name: str, email: str, group_name: str) -> None:
        subject = f"Update on your request to join {group_name}"
        text = (
            f"Hi {name},\n\n"
            f"Your request to join the group {group_name} has been declined "
            "by the group administrator.\n"
            "There are many other groups available on our platform that might interest you.\n\n"
            f"Best regards,\n{TEAM_SIGNATURE}"
        )
        html = self._wrap_html(
            '<h2 style="color: #f44336;">Request Update</h2>'
            f"<p>Hi {escape(name)},</p>"
            "<p>We're writing to inform you that your request to join the group "
            f"<strong>{escape(group_name)}</strong> has been declined by the group administrator.</p>"
            "<p>Don't worry! There are many other groups available on our platform "
            "that might interest you.</p>"
        )
        self._deliver("group rejection", email, subject, text, html)


def get_notifier(request: Request) -> Notifier:
    """FastAPI dependency: the Notifier built at startup."""
    return request.app.state.notifier
