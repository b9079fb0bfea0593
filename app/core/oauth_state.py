import secrets

from itsdangerous import BadSignature, URLSafeTimedSerializer

from app.core.config import settings


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(secret_key=settings.state_secret, salt="github-oauth-state")


def create_state() -> str:
    return _serializer().dumps({"nonce": secrets.token_urlsafe(16)})


def verify_state(state: str | None) -> bool:
    if not state:
        return False
    try:
        _serializer().loads(state, max_age=settings.OAUTH_STATE_MAX_AGE_SECONDS)
    except BadSignature:
        # SignatureExpired is a BadSignature
        return False
    return True
