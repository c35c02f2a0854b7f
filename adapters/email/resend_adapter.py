"""
Resend email service adapter.
"""

import asyncio
import logging
from html import escape

import resend

from infrastructure.config.settings import settings

logger = logging.getLogger(__name__)

THRESHOLD_HEADLINES = {
    80: "You've used 80% of your {feature} allowance",
    90: "You've used 90% of your {feature} allowance",
    100: "You've reached your {feature} limit",
}


class ResendEmailService:
    """Email service using Resend API."""

    def __init__(self):
        if settings.resend_api_key:
            resend.api_key = settings.resend_api_key
        self._from_email = settings.resend_from_email
        self._frontend_url = settings.frontend_url.rstrip("/")
        self._app_name = settings.app_name

    async def _send(self, to_email: str, subject: str, html: str, dev_note: str) -> bool:
        if not settings.resend_api_key:
            logger.info("[DEV] Email to %s (%s): %s", to_email, subject, dev_note)
            return True

        try:
            await asyncio.to_thread(
                resend.Emails.send,
                {
                    "from": self._from_email,
                    "to": to_email,
                    "subject": subject,
                    "html": html,
                },
            )
            return True
        except Exception as e:
            logger.error("Failed to send email '%s' to %s: %s", subject, to_email, e)
            return False

    async def send_verification_email(
        self,
        to_email: str,
        user_name: str,
        verification_token: str,
    ) -> bool:
        """
        Send email verification email.

        Args:
            to_email: Recipient email address
            user_name: User's name for personalization
            verification_token: JWT verification token

        Returns:
            True if sent (or logged in development), False otherwise
        """
        verification_url = f"{self._frontend_url}/verify-email?token={verification_token}"
        body = f"""
            <h2 style="color: #18181B; font-size: 20px;">Verify your email address</h2>
            <p style="color: #3F3F46; line-height: 1.6;">
                Hi {escape(user_name)},<br><br>
                Please confirm your email address to finish setting up your account.
            </p>
            {self._button(verification_url, "Verify Email Address")}
            <p style="color: #A1A1AA; font-size: 12px;">This link will expire in 24 hours.</p>
        """
        return await self._send(
            to_email,
            f"Verify your {self._app_name} email address",
            self._layout(body),
            verification_url,
        )

    async def send_usage_alert_email(
        self,
        to_email: str,
        user_name: str,
        workspace_name: str,
        feature_name: str,
        threshold: int,
        used: int,
        limit: int,
    ) -> bool:
        """Notify a workspace owner that a usage threshold was crossed."""
        headline = THRESHOLD_HEADLINES.get(threshold, THRESHOLD_HEADLINES[80]).format(
            feature=feature_name
        )
        usage_url = f"{self._frontend_url}/hub/usage"
        body = f"""
            <h2 style="color: #18181B; font-size: 20px;">{escape(headline)}</h2>
            <p style="color: #3F3F46; line-height: 1.6;">
                Hi {escape(user_name)},<br><br>
                Your workspace <strong>{escape(workspace_name)}</strong> has used
                {used} of {limit} {escape(feature_name)}.
            </p>
            {self._button(usage_url, "View Usage")}
        """
        return await self._send(
            to_email,
            f"{headline} ({workspace_name})",
            self._layout(body),
            f"{feature_name} {used}/{limit} ({threshold}%)",
        )

    async def send_account_deletion_email(
        self,
        to_email: str,
        user_name: str,
        days: int = 7,
    ) -> bool:
        """Tell a user their account is scheduled for deletion."""
        settings_url = f"{self._frontend_url}/hub/settings?section=delete_account"
        body = f"""
            <h2 style="color: #18181B; font-size: 20px;">Your account is scheduled for deletion</h2>
            <p style="color: #3F3F46; line-height: 1.6;">
                Hi {escape(user_name)},<br><br>
                Your account and its data will be permanently deleted in {days} days.
                If this wasn't you, cancel the deletion from your account settings.
            </p>
            {self._button(settings_url, "Cancel Deletion")}
        """
        return await self._send(
            to_email,
            f"Your {self._app_name} account will be deleted in {days} days",
            self._layout(body),
            settings_url,
        )

    @staticmethod
    def _button(url: str, label: str) -> str:
        return f"""
            <div style="text-align: center; margin: 32px 0;">
                <a href="{url}" style="display: inline-block; background: #7C3AED; color: white; text-decoration: none; padding: 14px 32px; border-radius: 12px; font-weight: 500;">
                    {label}
                </a>
            </div>
        """

    def _layout(self, body: str) -> str:
        return f"""
        <!DOCTYPE html>
        <html>
        <head>
            <meta charset="utf-8">
            <meta name="viewport" content="width=device-width, initial-scale=1.0">
        </head>
        <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; background-color: #FAFAFA; padding: 40px 20px;">
            <div style="max-width: 560px; margin: 0 auto; background: white; border-radius: 16px; padding: 40px;">
                <h1 style="color: #18181B; font-size: 24px; text-align: center;">{escape(self._app_name)}</h1>
                {body}
            </div>
        </body>
        </html>
        """


# Singleton instance
email_service = ResendEmailService()
