import logging
import os
import smtplib
from email.message import EmailMessage
from typing import Optional

from lostfound.config import is_testing

logger = logging.getLogger(__name__)

EMAIL_OUTBOX: list[dict] = []


def send_mail(to: str, subject: str, text: str, html: Optional[str] = None) -> dict:
    """Send one email and report what happened. Never raises for transport failures."""
    if is_testing():
        EMAIL_OUTBOX.append({"to": to, "subject": subject, "text": text, "html": html})
        return {"success": True, "message_id": f"test-{len(EMAIL_OUTBOX)}"}

    server = os.getenv("MAIL_SERVER")
    user = os.getenv("MAIL_USER")
    password = os.getenv("MAIL_PASSWORD")

    if not server or not user or not password:
        logger.warning("Mail credentials missing, skipping email send")
        return {"success": False, "error": "Mail credentials missing"}

    from_name = os.getenv("MAIL_FROM_NAME", "Campus Lost & Found")

    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = f"{from_name} <{user}>"
    msg["To"] = to
    msg.set_content(text)
    if html:
        msg.add_alternative(html, subtype="html")

    try:
        with smtplib.SMTP(server, int(os.getenv("MAIL_PORT", 587)), timeout=10) as s:
            if os.getenv("MAIL_USE_TLS", "1") == "1":
                s.starttls()
            s.login(user, password)
            s.send_message(msg)
    except (smtplib.SMTPException, OSError) as e:
        logger.error("Error sending email to %s: %s", to, e)
        return {"success": False, "error": str(e)}

    logger.info("Email sent to %s: %s", to, subject)
    return {"success": True, "message_id": msg.get("Message-ID")}
