from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials

from auth import security, get_verifier
from config import get_settings
from services.quotes import QuoteClient


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> dict:
    token = credentials.credentials
    claims = get_verifier().verify_token(token)

    return {
        'user_id': claims.get('sub'),
        'email': claims.get('email'),
        'username': claims.get('cognito:username') or claims.get('username'),
        'access_token': token,
        'claims': claims
    }


def get_quote_client(
    x_quote_api_key: str | None = Header(default=None)
):
    # A caller-supplied key wins over the configured one.
    settings = get_settings()
    client = QuoteClient(
        provider=settings.quote_provider,
        api_key=x_quote_api_key or settings.quote_api_key,
        timeout=settings.quote_timeout,
    )
    try:
        yield client
    finally:
        client.close()
