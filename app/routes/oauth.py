import logging

from fastapi import APIRouter, Depends, Query, Response, status
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.controllers.oauth_controller import github_connect, github_login, google_login
from app.core.config import settings
from app.core.database import get_db
from app.core.errors import ApiError
from app.core.oauth_state import create_state, verify_state
from app.core.security import set_session_cookie
from app.schemas.auth import (
    GithubCodeRequest,
    GithubConnectRequest,
    GithubConnectResponse,
    GithubLoginResponse,
    GithubUser,
    GoogleLoginRequest,
    LoginResponse,
    UserInfo,
)
from app.services import github_oauth

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth - OAuth"])


def _profile_redirect(query: str) -> RedirectResponse:
    return RedirectResponse(
        url=f"{settings.APP_URL.rstrip('/')}/profile?{query}",
        status_code=status.HTTP_307_TEMPORARY_REDIRECT,
    )


# ───────────────── GITHUB ─────────────────

@router.post("/github", response_model=GithubLoginResponse, summary="GitHub code exchange")
async def github_exchange(
    payload: GithubCodeRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> GithubLoginResponse:
    user, token = await github_login(db, payload.code)
    set_session_cookie(response, token)
    return GithubLoginResponse(
        session=token,
        user=GithubUser(
            id=user.id,
            email=user.email,
            github_username=user.github,
            wallet_address=user.wallet_address,
        ),
    )


@router.get("/github/login", summary="Start GitHub OAuth")
async def github_authorize() -> RedirectResponse:
    return RedirectResponse(
        url=github_oauth.authorize_url(create_state()),
        status_code=status.HTTP_307_TEMPORARY_REDIRECT,
    )


@router.get("/github/callback", summary="GitHub OAuth callback")
async def github_callback(
    code: str | None = Query(None),
    state: str | None = Query(None),
    error: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
) -> RedirectResponse:
    if error:
        logger.warning("OAuth error from GitHub: %s", error)
        return _profile_redirect("error=github")
    if not code or not verify_state(state):
        logger.warning("GitHub callback without code or with a bad state")
        return _profile_redirect("error=github")

    try:
        _, token = await github_login(db, code)
    except ApiError as e:
        logger.warning("GitHub callback failed: %s", e)
        return _profile_redirect("error=github")

    redirect = _profile_redirect("github=connected")
    set_session_cookie(redirect, token)
    return redirect


@router.post("/github/connect", response_model=GithubConnectResponse, summary="Link GitHub handle")
async def github_link(
    payload: GithubConnectRequest,
    db: AsyncSession = Depends(get_db),
) -> GithubConnectResponse:
    user = await github_connect(db, payload.access_token)
    return GithubConnectResponse(github=user.github)


# ───────────────── GOOGLE ─────────────────

@router.post("/google", response_model=LoginResponse, summary="Google sign-in")
async def google_signin(
    payload: GoogleLoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> LoginResponse:
    user, token = await google_login(db, payload)
    set_session_cookie(response, token)
    return LoginResponse(user=UserInfo.from_user(user))
