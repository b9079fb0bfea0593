import logging
from urllib.parse import urlencode

import httpx

from app.core.config import settings

logger = logging.getLogger(__name__)

BREVO_SEND_URL = "https://api.brevo.com/v3/smtp/email"


class EmailDeliveryError(RuntimeError):
    pass


def build_magic_link(email: str, otp: str, token_id: str) -> str:
    query = urlencode({"email": email, "otp": otp, "tokenId": token_id})
    return f"{settings.APP_URL.rstrip('/')}/api/auth/verify-otp?{query}"


def _render_otp_email(otp: str, magic_link: str) -> str:
    minutes = max(settings.otp_ttl_seconds // 60, 1)
    return f"""
    <div style="font-family:system-ui,-apple-system,Segoe UI,Roboto;line-height:1.6">
      <h2>Your sign-in code</h2>
      <p>Your one-time code is:</p>
      <p style="font-size:28px;font-weight:700;letter-spacing:4px">{otp}</p>
      <p>The code is valid for {minutes} minutes.</p>

      <hr style="margin:24px 0;border:none;border-top:1px solid #eee" />

      <p>Or sign in with one click:</p>
      <a href="{magic_link}"
         style="display:inline-block;background:#0ea5e9;color:#fff;text-decoration:none;
                padding:10px 16px;border-radius:8px;">
        Sign in
      </a>

      <p style="color:#6b7280">If you did not request this, you can ignore this email.</p>
    </div>
    """


async def send_otp_email(to_email: str, otp: str, token_id: str) -> None:
    """
    Sends the code plus a magic link through the Brevo (Sendinblue)
    transactional API. Failures are raised to the caller; nothing is retried.
    """
    api_key = settings.SENDINBLUE_API_KEY
    if not api_key:
        raise EmailDeliveryError("SENDINBLUE_API_KEY not configured")

    payload = {
        "sender": {"name": settings.EMAIL_FROM_NAME, "email": settings.EMAIL_FROM},
        "to": [{"email": to_email}],
        "subject": "Your sign-in code",
        "htmlContent": _render_otp_email(otp, build_magic_link(to_email, otp, token_id)),
    }

    async with httpx.AsyncClient(timeout=20) as client:
        try:
            r = await client.post(
                BREVO_SEND_URL,
                headers={"api-key": api_key, "Content-Type": "application/json"},
                json=payload,
            )
        except httpx.HTTPError as e:
            raise EmailDeliveryError(f"Email delivery to {to_email} failed: {e}") from e

    if r.status_code >= 400:
        raise EmailDeliveryError(f"Sendinblue error {r.status_code}: {r.text}")

    logger.info("OTP email sent to %s (token %s)", to_email, token_id)
