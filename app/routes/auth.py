from fastapi import APIRouter, Depends, Query, Request, Response, status
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import TypeAdapter, EmailStr
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.controllers.otp_controller import issue_otp, verify_otp
from app.core.config import settings
from app.core.database import get_db
from app.core.dependencies import session_from_cookie
from app.core.errors import ValidationError
from app.core.security import clear_session_cookie, is_valid_otp_format, set_session_cookie
from app.schemas.auth import (
    LoginResponse,
    MeResponse,
    RequestOtp,
    RequestOtpResponse,
    SessionInfo,
    UserInfo,
    VerifyOtp,
)

router = APIRouter(prefix="/auth", tags=["Auth"])

_email_adapter = TypeAdapter(EmailStr)


@router.post(
    "/request-otp",
    response_model=RequestOtpResponse,
    summary="Request OTP",
    description="""
Creates the user on first contact, expires any earlier pending code and
emails a fresh one-time code plus a magic link.
Returns the `tokenId` to send back with the code.
    """,
)
async def request_otp(
    payload: RequestOtp,
    db: AsyncSession = Depends(get_db),
) -> RequestOtpResponse:
    token_id = await issue_otp(db, str(payload.email))
    return RequestOtpResponse(token_id=token_id)


@router.post(
    "/verify-otp",
    response_model=LoginResponse,
    summary="Verify OTP",
    description="Verifies the code and sets the `session` cookie.",
)
async def verify_otp_json(
    payload: VerifyOtp,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> LoginResponse:
    user, token = await verify_otp(db, str(payload.email), payload.otp, payload.token_id)
    set_session_cookie(response, token)
    return LoginResponse(user=UserInfo.from_user(user))


@router.get(
    "/verify-otp",
    summary="Verify OTP (magic link)",
    description="Same as POST, but redirects to the app home page on success.",
)
async def verify_otp_link(
    email: str = Query(""),
    otp: str = Query(""),
    token_id: str = Query("", alias="tokenId"),
    db: AsyncSession = Depends(get_db),
) -> RedirectResponse:
    try:
        email = str(_email_adapter.validate_python(email))
    except PydanticValidationError:
        raise ValidationError({"email": ["Invalid email"]})
    if not is_valid_otp_format(otp):
        raise ValidationError({"otp": [f"OTP must be exactly {settings.OTP_LENGTH} digits"]})
    if len(token_id) < 8:
        raise ValidationError({"tokenId": ["Invalid token id"]})

    _, token = await verify_otp(db, email, otp, token_id)

    redirect = RedirectResponse(url=f"{settings.APP_URL.rstrip('/')}/", status_code=status.HTTP_307_TEMPORARY_REDIRECT)
    set_session_cookie(redirect, token)
    return redirect


@router.get(
    "/me",
    response_model=MeResponse,
    summary="Session probe",
    description="Returns the identity carried by the `session` cookie.",
)
async def me(request: Request):
    session = session_from_cookie(request)
    if session is None:
        return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content={"ok": False})
    return MeResponse(user=SessionInfo(user_id=session.user_id, email=session.email))


@router.post(
    "/logout",
    summary="Logout",
    description="""
Session tokens are stateless; the server has no session to destroy.
This clears the `session` cookie; the token itself stays valid until expiry.
    """,
)
async def logout(response: Response) -> dict:
    clear_session_cookie(response)
    return {"ok": True}
