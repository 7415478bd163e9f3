# app/email_service.py
import logging
import os
import smtplib
from email.message import EmailMessage
from html import escape

import requests

logger = logging.getLogger(__name__)

RESEND_ENDPOINT = "https://api.resend.com/emails"
SIGNATURE = "Guide Partner Program"


def _env(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    return default if value in ("", None) else value


def _post_resend(to_email: str, subject: str, text_body: str, html_body: str | None) -> None:
    api_key = _env("RESEND_API_KEY")
    sender = _env("FROM_EMAIL") or _env("SMTP_FROM")
    if not api_key or not sender:
        raise RuntimeError("RESEND_API_KEY / FROM_EMAIL not configured")

    body: dict = {"from": sender, "to": [to_email], "subject": subject, "text": text_body}
    if html_body:
        body["html"] = html_body
    reply_to = _env("REPLY_TO_EMAIL") or _env("SMTP_REPLY_TO")
    if reply_to:
        body["reply_to"] = reply_to

    resp = requests.post(
        RESEND_ENDPOINT,
        headers={"Authorization": f"Bearer {api_key}"},
        json=body,
        timeout=15,
    )
    if resp.status_code >= 300:
        raise RuntimeError(f"Resend rejected message: {resp.status_code} {resp.text}")


def _send_smtp(to_email: str, subject: str, text_body: str, html_body: str | None) -> None:
    host = _env("SMTP_HOST")
    user = _env("SMTP_USER")
    sender = _env("SMTP_FROM", user)
    if not host or not sender:
        raise RuntimeError("SMTP_HOST / SMTP_FROM not configured")

    sender_name = _env("SMTP_FROM_NAME")
    msg = EmailMessage()
    msg["From"] = f"{sender_name} <{sender}>" if sender_name else sender
    msg["To"] = to_email
    msg["Subject"] = subject
    if _env("SMTP_REPLY_TO"):
        msg["Reply-To"] = _env("SMTP_REPLY_TO")
    msg.set_content(text_body)
    if html_body:
        msg.add_alternative(html_body, subtype="html")

    with smtplib.SMTP(host, int(_env("SMTP_PORT", "587")), timeout=20) as server:
        if _env("SMTP_TLS", "1") == "1":
            server.starttls()
        password = _env("SMTP_PASS")
        if user and password:
            server.login(user, password)
        server.send_message(msg)


def _deliver(to_email: str, subject: str, text_body: str, html_body: str | None = None) -> None:
    """
    Partner notices go out only with EMAIL_ENABLED=1.
    EMAIL_PROVIDER picks the transport: resend (HTTP API) or smtp (default).
    """
    if _env("EMAIL_ENABLED", "0") != "1":
        logger.debug("Email disabled, skipping subject=%r to=%s", subject, to_email)
        return

    if (_env("EMAIL_PROVIDER", "smtp") or "smtp").strip().lower() == "resend":
        _post_resend(to_email, subject, text_body, html_body)
    else:
        _send_smtp(to_email, subject, text_body, html_body)


def _yen(amount) -> str:
    return f"¥{int(amount or 0):,}"


# =================================================
# WITHDRAWAL STATUS NOTICES
# =================================================
_WITHDRAWAL_SUBJECTS = {
    "approved": "Guide Partner - withdrawal approved",
    "rejected": "Guide Partner - withdrawal rejected",
    "completed": "Guide Partner - withdrawal paid",
}


def send_withdrawal_status_email(
    to_email: str,
    partner_name: str,
    withdrawal_id: int,
    status: str,
    amount,
    review_note: str | None = None,
    payment_reference: str | None = None,
) -> None:
    """
    Best effort: called from a background task after the status change has
    been committed. Failures are logged only.
    """
    subject = _WITHDRAWAL_SUBJECTS.get(status)
    if not subject or not to_email:
        return

    lines = [
        f"Hello {partner_name},",
        "",
        f"Your withdrawal request #{withdrawal_id} ({_yen(amount)}) is now: {status.upper()}.",
    ]
    if status == "rejected":
        lines.append("The amount has been returned to your available balance.")
        if review_note:
            lines.append(f"Reason: {review_note}")
    if status == "completed" and payment_reference:
        lines.append(f"Bank transfer reference: {payment_reference}")
    lines += ["", SIGNATURE]

    html_body = f"""
    <div style="font-family:Arial,Helvetica,sans-serif;font-size:14px;line-height:1.6;color:#111;">
      <p>Hello {escape(partner_name)},</p>
      <p>Your withdrawal request <b>#{withdrawal_id}</b> ({_yen(amount)}) is now <b>{escape(status.upper())}</b>.</p>
      {f"<p>Reason: {escape(review_note)}</p>" if status == "rejected" and review_note else ""}
      {f"<p>Bank transfer reference: <b>{escape(payment_reference)}</b></p>" if status == "completed" and payment_reference else ""}
      <p style="margin-top:18px;color:#444;">Guide Partner Program</p>
    </div>
    """.strip()

    try:
        _deliver(to_email, subject, "\n".join(lines), html_body)
    except Exception as e:
        logger.warning("Withdrawal email failed withdrawal_id=%s to=%s: %s", withdrawal_id, to_email, str(e))


# =================================================
# TIER NOTICE
# =================================================
def send_tier_changed_email(to_email: str, partner_name: str, tier_name: str, commission_rate) -> None:
    subject = f"Guide Partner - you are now on the {tier_name} plan"
    text_body = "\n".join(
        [
            f"Hello {partner_name},",
            "",
            f"Your plan is now {tier_name}. New bookings earn {commission_rate}% commission.",
            "",
            SIGNATURE,
        ]
    )
    try:
        _deliver(to_email, subject, text_body)
    except Exception as e:
        logger.warning("Tier email failed to=%s: %s", to_email, str(e))
