import logging
import os
import smtplib
from email.message import EmailMessage

log = logging.getLogger("certs.mailer")


def smtp_settings():
    return {
        "SMTP_HOST": os.getenv("SMTP_HOST"),
        "SMTP_PORT": int(os.getenv("SMTP_PORT", "587")),
        "SMTP_USER": os.getenv("SMTP_USER"),
        "SMTP_PASS": os.getenv("SMTP_PASS"),
        "FROM_EMAIL": os.getenv("FROM_EMAIL", "no-reply@example.com"),
    }


def send_mail(to_email: str, subject: str, body: str, attachments=(), settings=None):
    """Send a plain-text message with (filename, bytes) PDF attachments.

    Returns False without sending when no SMTP host is configured; SMTP
    errors propagate to the caller.
    """
    settings = settings or smtp_settings()
    host = settings.get("SMTP_HOST")
    if not host:
        log.info("[MAIL-OUT] mode=stub to=%s subject=%r result=stub", to_email, subject)
        return False

    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = settings.get("FROM_EMAIL") or "no-reply@example.com"
    msg["To"] = to_email
    msg.set_content(body)
    for filename, payload in attachments:
        msg.add_attachment(payload, maintype="application", subtype="pdf", filename=filename)

    port = int(settings.get("SMTP_PORT") or 587)
    with smtplib.SMTP(host, port) as s:
        s.starttls()
        if settings.get("SMTP_USER") and settings.get("SMTP_PASS"):
            s.login(settings["SMTP_USER"], settings["SMTP_PASS"])
        s.send_message(msg)
    log.info("[MAIL-OUT] mode=real to=%s subject=%r host=%s result=sent", to_email, subject, host)
    return True


def certificate_message(name: str, event_label: str):
    subject = f"Your Certificate - {event_label}"
    body = f"Hi {name},\n\nPlease find attached your certificate for {event_label}.\n\nRegards,\nOrganizer"
    return subject, body
