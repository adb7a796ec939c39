"""Transactional email (verification, password reset, welcome) over SMTP."""

import logging
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape

import aiosmtplib

from app.core.config import settings
from app.exceptions.base import EmailDeliveryError

logger = logging.getLogger(__name__)

VERIFICATION_TEXT = {
    "en": {
        "subject": "Verify Your Email - AI Chatbot",
        "title": "Verify your email address",
        "greeting": "Hello!",
        "message": "Thanks for signing up. Please confirm your email address to activate your account.",
        "button": "Verify Email",
        "link_text": "Or copy and paste this link into your browser:",
        "note": "This verification link will expire in 24 hours.",
    },
    "ar": {
        "subject": "تحقق من بريدك الإلكتروني - الشات بوت الذكي",
        "title": "تأكيد عنوان بريدك الإلكتروني",
        "greeting": "مرحباً!",
        "message": "شكراً لتسجيلك. يرجى تأكيد بريدك الإلكتروني لتفعيل حسابك.",
        "button": "تأكيد البريد الإلكتروني",
        "link_text": "أو انسخ والصق هذا الرابط في متصفحك:",
        "note": "ستنتهي صلاحية رابط التحقق هذا خلال 24 ساعة.",
    },
}

RESET_TEXT = {
    "en": {
        "subject": "Reset Your Password - AI Chatbot",
        "title": "Reset your password",
        "greeting": "Hello!",
        "message": "We received a request to reset your password. Click the button below to choose a new one.",
        "button": "Reset Password",
        "link_text": "Or copy and paste this link into your browser:",
        "note": "This password reset link will expire in 1 hour for security reasons.",
    },
    "ar": {
        "subject": "إعادة تعيين كلمة المرور - الشات بوت الذكي",
        "title": "إعادة تعيين كلمة المرور",
        "greeting": "مرحباً!",
        "message": "تلقينا طلباً لإعادة تعيين كلمة المرور. انقر على الزر أدناه لاختيار كلمة مرور جديدة.",
        "button": "إعادة تعيين كلمة المرور",
        "link_text": "أو انسخ والصق هذا الرابط في متصفحك:",
        "note": "ستنتهي صلاحية هذا الرابط خلال ساعة واحدة لأسباب أمنية.",
    },
}

WELCOME_TEXT = {
    "en": {
        "subject": "Welcome to AI Chatbot!",
        "title": "Welcome, {username}!",
        "greeting": "Your account is now active.",
        "message": "You can start chatting with Gemini and DeepSeek in English or Arabic right away.",
        "button": "Start Chatting",
        "link_text": "Open the app:",
        "note": "Thanks for joining us.",
    },
    "ar": {
        "subject": "مرحباً بك في الشات بوت الذكي!",
        "title": "مرحباً {username}!",
        "greeting": "تم تفعيل حسابك.",
        "message": "يمكنك البدء في الدردشة مع Gemini و DeepSeek باللغة العربية أو الإنجليزية فوراً.",
        "button": "ابدأ المحادثة",
        "link_text": "افتح التطبيق:",
        "note": "شكراً لانضمامك إلينا.",
    },
}


def render_email(texts: dict[str, str], url: str, language: str) -> tuple[str, str]:
    """Return ``(html, text)`` bodies; Arabic mail is laid out right-to-left."""
    direction = "rtl" if language == "ar" else "ltr"
    align = "right" if language == "ar" else "left"
    safe_url = escape(url, quote=True)
    html = f"""<!DOCTYPE html>
<html lang="{language}" dir="{direction}">
<head><meta charset="UTF-8"></head>
<body style="font-family: Arial, sans-serif; background-color: #f3f4f6; padding: 24px;">
  <div style="max-width: 600px; margin: 0 auto; background: #ffffff; border-radius: 12px; padding: 32px; text-align: {align};">
    <h1 style="color: #1f2937;">{escape(texts["title"])}</h1>
    <p style="color: #374151;">{escape(texts["greeting"])}</p>
    <p style="color: #374151;">{escape(texts["message"])}</p>
    <p style="text-align: center; margin: 32px 0;">
      <a href="{safe_url}" style="background-color: #4f46e5; color: #ffffff; padding: 12px 24px; border-radius: 8px; text-decoration: none;">{escape(texts["button"])}</a>
    </p>
    <p style="color: #6b7280; font-size: 13px;">{escape(texts["link_text"])}</p>
    <p style="word-break: break-all;"><a href="{safe_url}" style="color: #4f46e5;">{safe_url}</a></p>
    <p style="color: #9ca3af; font-size: 12px;">{escape(texts["note"])}</p>
  </div>
</body>
</html>"""
    text = f"{texts['greeting']}\n\n{texts['message']}\n\n{url}\n\n{texts['note']}"
    return html, text


class EmailService:
    """Service for sending emails via SMTP."""

    def __init__(self):
        """Initialize email service with SMTP configuration."""
        self.smtp_host = settings.smtp_host
        self.smtp_port = settings.smtp_port
        self.smtp_user = settings.smtp_user
        self.smtp_password = settings.smtp_password
        self.use_tls = settings.smtp_use_tls
        self.from_email = settings.email_from or settings.smtp_user

    def is_configured(self) -> bool:
        return bool(self.smtp_host and self.smtp_user and self.smtp_password)

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: str | None = None,
    ) -> bool:
        """Send an email via SMTP.

        Returns:
            True if the relay accepted the message, False when SMTP is not configured

        Raises:
            EmailDeliveryError: the relay refused the message or was unreachable
        """
        if not self.is_configured():
            logger.warning("Email service not configured properly")
            return False

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.from_email
        msg["To"] = to_email
        if text_content:
            msg.attach(MIMEText(text_content, "plain", "utf-8"))
        msg.attach(MIMEText(html_content, "html", "utf-8"))

        logger.info(f"Sending email to {to_email} with subject: {subject}")
        try:
            await aiosmtplib.send(
                msg,
                hostname=self.smtp_host,
                port=self.smtp_port,
                username=self.smtp_user,
                password=self.smtp_password,
                start_tls=self.use_tls,
            )
        except aiosmtplib.SMTPException as e:
            logger.error(f"❌ SMTP error sending email to {to_email}: {str(e)}")
            raise EmailDeliveryError(details={"recipient": to_email}) from e

        logger.info(f"✅ Email sent successfully to {to_email}")
        return True

    async def _send_link(
        self, catalog: dict, to_email: str, url: str, language: str, **params
    ) -> bool:
        lang = language if language in catalog else "en"
        texts = {key: value.format(**params) for key, value in catalog[lang].items()}
        if not self.is_configured():
            # Without SMTP the link is only logged so local setups stay usable.
            logger.info(f"📧 Email not configured, link for {to_email}: {url}")
            return False
        html, text = render_email(texts, url, lang)
        return await self.send_email(to_email, texts["subject"], html, text)

    async def send_verification_email(self, to_email: str, token: str, language: str = "en") -> bool:
        url = f"{settings.frontend_url}/verify-email/{token}"
        return await self._send_link(VERIFICATION_TEXT, to_email, url, language)

    async def send_password_reset_email(self, to_email: str, token: str, language: str = "en") -> bool:
        url = f"{settings.frontend_url}/reset-password/{token}"
        return await self._send_link(RESET_TEXT, to_email, url, language)

    async def send_welcome_email(self, to_email: str, username: str, language: str = "en") -> bool:
        url = f"{settings.frontend_url}/chat"
        return await self._send_link(WELCOME_TEXT, to_email, url, language, username=username)
