# portfolio_newsletter/services/email_service.py - AWS SES Integration
import boto3
from botocore.exceptions import ClientError
from typing import Optional, Dict, Any, List
from datetime import datetime
from portfolio_newsletter.config import Settings
import html
import re
import logging
import asyncio
from concurrent.futures import ThreadPoolExecutor

logger = logging.getLogger(__name__)

class EmailService:
    def __init__(self, settings: Settings, ses_client=None):
        logger.info(f"Initializing email service (region: {settings.aws_region}, from: {settings.from_email})")

        self.ses_client = ses_client or boto3.client('sesv2', region_name=settings.aws_region)
        self.from_email = settings.from_email
        self.from_name = settings.from_name
        self.support_email = settings.support_email
        self.configuration_set = settings.ses_configuration_set
        self.enabled = settings.mail_enabled
        self.link_ttl_hours = settings.confirmation_link_ttl_hours
        self.executor = ThreadPoolExecutor(max_workers=5)

    async def send_confirmation_email(
        self,
        email: str,
        confirmation_url: str,
        unsubscribe_url: Optional[str] = None
    ) -> bool:
        """Send the double opt-in confirmation email"""
        logger.info(f"📧 Sending newsletter confirmation to {email}")

        try:
            result = await self._send_email_async(
                to_email=email,
                subject="Confirm Your Newsletter Subscription",
                html_content=self._create_confirmation_email_html(confirmation_url, unsubscribe_url),
                text_content=self._create_confirmation_email_text(confirmation_url, unsubscribe_url)
            )
            logger.info(f"✅ Confirmation email sent to {email} (message id: {result.get('message_id')})")
            return True

        except Exception as e:
            logger.error(f"❌ Failed to send confirmation email to {email}: {type(e).__name__}: {e}")
            return False

    async def send_newsletter(
        self,
        email: str,
        subject: str,
        html_body: str,
        unsubscribe_url: str
    ) -> bool:
        """Send one newsletter issue to one subscriber"""
        try:
            result = await self._send_email_async(
                to_email=email,
                subject=subject,
                html_content=self._create_newsletter_html(html_body, unsubscribe_url),
                text_content=self._create_newsletter_text(html_body, unsubscribe_url),
                headers=[
                    {'Name': 'List-Unsubscribe', 'Value': f"<{unsubscribe_url}>"},
                ]
            )
            logger.info(f"Newsletter '{subject}' sent to {email} (message id: {result.get('message_id')})")
            return True

        except Exception as e:
            logger.error(f"❌ Failed to send newsletter '{subject}' to {email}: {type(e).__name__}: {e}")
            return False

    async def _send_email_async(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: str,
        reply_to: Optional[str] = None,
        headers: Optional[List[Dict[str, str]]] = None
    ) -> Dict[str, Any]:
        """Send email using AWS SES (async wrapper)"""
        if not self.enabled:
            raise ValueError("Email sending is disabled (MAIL_ENABLED=false)")

        loop = asyncio.get_running_loop()

        # Run SES call in thread pool to avoid blocking
        return await loop.run_in_executor(
            self.executor,
            self._send_email_ses,
            to_email,
            subject,
            html_content,
            text_content,
            reply_to,
            headers
        )

    def _send_email_ses(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: str,
        reply_to: Optional[str] = None,
        headers: Optional[List[Dict[str, str]]] = None
    ) -> Dict[str, Any]:
        """Send email using AWS SES"""
        try:
            simple = {
                'Subject': {
                    'Data': subject,
                    'Charset': 'UTF-8'
                },
                'Body': {
                    'Html': {
                        'Data': html_content,
                        'Charset': 'UTF-8'
                    },
                    'Text': {
                        'Data': text_content,
                        'Charset': 'UTF-8'
                    }
                }
            }
            if headers:
                simple['Headers'] = headers

            email_params = {
                'FromEmailAddress': f"{self.from_name} <{self.from_email}>",
                'Destination': {
                    'ToAddresses': [to_email]
                },
                'Content': {
                    'Simple': simple
                },
                'ReplyToAddresses': [reply_to or self.support_email]
            }
            if self.configuration_set:
                email_params['ConfigurationSetName'] = self.configuration_set

            response = self.ses_client.send_email(**email_params)

            return {
                'success': True,
                'message_id': response.get('MessageId'),
                'to_email': to_email
            }

        except ClientError as e:
            error_code = e.response['Error']['Code']
            error_message = e.response['Error']['Message']

            logger.error(f"🚨 AWS SES client error {error_code} for {to_email}: {error_message}")

            if error_code == 'MessageRejected':
                raise ValueError(f"Email rejected: {error_message}")
            elif error_code == 'MailFromDomainNotVerifiedException':
                raise ValueError("Sender domain not verified with AWS SES")
            elif error_code == 'SendingPausedException':
                raise ValueError("SES sending is paused - check your account status")
            elif error_code == 'AccountSuspendedException':
                raise ValueError("SES account suspended - likely due to bounce/complaint rate")
            else:
                raise ValueError(f"Email delivery failed: {error_message}")

    def _create_confirmation_email_html(self, confirmation_url: str, unsubscribe_url: Optional[str] = None) -> str:
        """Create HTML content for the confirmation email"""
        url = html.escape(confirmation_url, quote=True)
        year = datetime.now().year
        unsubscribe_link = ""
        if unsubscribe_url:
            unsubscribe_link = (
                f'<p><a href="{html.escape(unsubscribe_url, quote=True)}" '
                f'style="color: #7a7a7a; text-decoration: underline;">Unsubscribe</a></p>'
            )

        return f"""
        <!DOCTYPE html>
        <html lang="en">
        <head>
            <meta charset="UTF-8">
            <meta name="viewport" content="width=device-width, initial-scale=1.0">
            <title>Confirm Your Subscription</title>
        </head>
        <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Arial, sans-serif; margin: 0; padding: 0; background-color: #f9faf8;">
            <div style="max-width: 600px; margin: 40px auto; background: #ffffff; border-radius: 8px;">
                <div style="background-color: #7a9d7a; border-radius: 8px 8px 0 0; padding: 30px; text-align: center;">
                    <h1 style="margin: 0; font-size: 24px; color: #ffffff;">Confirm Your Subscription</h1>
                </div>
                <div style="padding: 40px 30px; color: #5a5a5a; font-size: 16px; line-height: 1.6;">
                    <p>Thanks for subscribing to the {html.escape(self.from_name)} newsletter!</p>
                    <p>Click the button below to confirm your subscription and start receiving updates about new projects, tutorials, and insights:</p>
                    <p style="text-align: center; padding: 20px 0;">
                        <a href="{url}" style="display: inline-block; background-color: #7a9d7a; color: #ffffff; padding: 14px 28px; text-decoration: none; border-radius: 6px; font-weight: 600;">Confirm Subscription</a>
                    </p>
                    <p style="font-size: 14px; color: #7a7a7a;">This link expires in {self.link_ttl_hours} hours. If you didn't subscribe, you can safely ignore this email.</p>
                </div>
                <div style="padding: 20px 30px; text-align: center; border-top: 1px solid #e5e3df; font-size: 12px; color: #7a7a7a;">
                    <p>&copy; {year} {html.escape(self.from_name)}. All rights reserved.</p>
                    {unsubscribe_link}
                </div>
            </div>
        </body>
        </html>
        """

    def _create_confirmation_email_text(self, confirmation_url: str, unsubscribe_url: Optional[str] = None) -> str:
        """Create plain text content for the confirmation email"""
        footer = f"\n---\nUnsubscribe: {unsubscribe_url}\n" if unsubscribe_url else ""
        return f"""
Confirm Your Subscription

Thanks for subscribing to the {self.from_name} newsletter!

Open the link below to confirm your subscription:
{confirmation_url}

This link expires in {self.link_ttl_hours} hours. If you didn't subscribe, you can safely ignore this email.
{footer}
        """

    def _create_newsletter_html(self, html_body: str, unsubscribe_url: str) -> str:
        url = html.escape(unsubscribe_url, quote=True)

        return f"""
        <!DOCTYPE html>
        <html lang="en">
        <head>
            <meta charset="UTF-8">
            <meta name="viewport" content="width=device-width, initial-scale=1.0">
        </head>
        <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Arial, sans-serif; margin: 0; padding: 0; background-color: #f9faf8;">
            <div style="max-width: 600px; margin: 20px auto; background: #ffffff;">
                <div style="padding: 40px 30px; color: #333333; font-size: 16px; line-height: 1.6;">
                    {html_body}
                </div>
                <div style="padding: 20px 30px; text-align: center; border-top: 1px solid #eeeeee; font-size: 12px;">
                    <a href="{url}" style="color: #666666; text-decoration: underline;">Unsubscribe from this newsletter</a>
                </div>
            </div>
        </body>
        </html>
        """

    def _create_newsletter_text(self, html_body: str, unsubscribe_url: str) -> str:
        text_body = re.sub(r"<br\s*/?>", "\n", html_body)
        text_body = html.unescape(re.sub(r"<[^>]+>", "", text_body))
        return f"""
{text_body}

---
Unsubscribe: {unsubscribe_url}
        """
