import logging
from dataclasses import dataclass
from urllib.parse import urlencode

import httpx
from fastapi import status

from app.core.config import settings
from app.core.errors import UpstreamFailure, ValidationError

logger = logging.getLogger(__name__)

AUTHORIZE_URL = "https://github.com/login/oauth/authorize"
TOKEN_URL = "https://github.com/login/oauth/access_token"
API_URL = "https://api.github.com"


@dataclass(frozen=True)
class GithubProfile:
    login: str
    email: str


def authorize_url(state: str) -> str:
    params = {
        "client_id": settings.GITHUB_CLIENT_ID or "",
        "scope": "read:user user:email",
        "state": state,
    }
    if settings.GITHUB_REDIRECT_URI:
        params["redirect_uri"] = settings.GITHUB_REDIRECT_URI
    return f"{AUTHORIZE_URL}?{urlencode(params)}"


def _provider_failure(message: str) -> UpstreamFailure:
    return UpstreamFailure(message, status_code=status.HTTP_401_UNAUTHORIZED)


async def exchange_code(code: str) -> str:
    """Trades an authorization code for a GitHub access token."""
    if not settings.GITHUB_CLIENT_ID or not settings.GITHUB_CLIENT_SECRET:
        raise UpstreamFailure("GitHub OAuth is not configured")

    payload = {
        "client_id": settings.GITHUB_CLIENT_ID,
        "client_secret": settings.GITHUB_CLIENT_SECRET,
        "code": code,
    }
    if settings.GITHUB_REDIRECT_URI:
        payload["redirect_uri"] = settings.GITHUB_REDIRECT_URI

    async with httpx.AsyncClient(timeout=20) as client:
        try:
            r = await client.post(TOKEN_URL, data=payload, headers={"Accept": "application/json"})
        except httpx.HTTPError as e:
            logger.error("GitHub token exchange failed: %s", e)
            raise _provider_failure("GitHub authentication failed") from e

    if r.status_code >= 400:
        logger.error("GitHub token exchange error %s: %s", r.status_code, r.text)
        raise _provider_failure("GitHub authentication failed")

    try:
        body = r.json()
    except ValueError as e:
        logger.error("GitHub token exchange returned a non-JSON body: %s", r.text[:200])
        raise _provider_failure("GitHub authentication failed") from e

    token = body.get("access_token") if isinstance(body, dict) else None
    if not token:
        # GitHub reports bad / reused codes with 200 + {"error": ...}
        reason = (body.get("error_description") or body.get("error")) if isinstance(body, dict) else body
        logger.warning("GitHub token exchange rejected: %s", reason)
        raise _provider_failure("GitHub authentication failed")
    return token


def _pick_email(entries: list[dict]) -> str | None:
    usable = [e for e in entries if isinstance(e, dict) and e.get("email")]
    for entry in usable:
        if entry.get("primary"):
            return entry["email"]
    return usable[0]["email"] if usable else None


def _resolve_login(profile: dict) -> str | None:
    for key in ("login", "user_name", "preferred_username"):
        value = profile.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


async def fetch_profile(access_token: str) -> GithubProfile:
    """
    Reads the GitHub profile. When the profile hides its email, falls back to
    /user/emails (primary entry, else the first one listed).
    """
    headers = {
        "Authorization": f"Bearer {access_token}",
        "Accept": "application/vnd.github+json",
    }
    async with httpx.AsyncClient(base_url=API_URL, timeout=20, headers=headers) as client:
        try:
            r = await client.get("/user")
            if r.status_code >= 400:
                logger.error("GitHub /user error %s: %s", r.status_code, r.text)
                raise _provider_failure("Invalid GitHub access token")
            profile = r.json()
            if not isinstance(profile, dict):
                raise _provider_failure("GitHub authentication failed")

            email = profile.get("email")
            if not email:
                er = await client.get("/user/emails")
                if er.status_code < 400:
                    email = _pick_email(er.json())
                else:
                    logger.warning("GitHub /user/emails error %s", er.status_code)
        except (httpx.HTTPError, ValueError) as e:
            # ValueError: a body that is not JSON
            logger.error("GitHub profile fetch failed: %s", e)
            raise _provider_failure("GitHub authentication failed") from e

    login = _resolve_login(profile)
    if not login:
        raise _provider_failure("GitHub profile has no username")
    if not email:
        raise ValidationError("Unable to resolve an email from GitHub")

    return GithubProfile(login=login, email=email)
