from fastapi import HTTPException, status
from fastapi.security import HTTPBearer
from jose import jwk, jwt
from jose.utils import base64url_decode
from functools import lru_cache
import logging
import requests
import time

from config import get_settings

logger = logging.getLogger(__name__)

security = HTTPBearer()

JWKS_TTL_SECONDS = 3600


class CognitoTokenVerifier:
    def __init__(self, region: str, user_pool_id: str, app_client_id: str):
        self.region = region
        self.user_pool_id = user_pool_id
        self.app_client_id = app_client_id
        self.issuer = f'https://cognito-idp.{region}.amazonaws.com/{user_pool_id}'
        self.jwks_url = f'{self.issuer}/.well-known/jwks.json'
        self._jwks = None
        self._jwks_last_fetched = 0

    @property
    def jwks(self):
        if not self._jwks or (time.time() - self._jwks_last_fetched) > JWKS_TTL_SECONDS:
            logger.info(f"Fetching JWKS from {self.jwks_url}")

            response = requests.get(self.jwks_url, timeout=5)
            data = response.json()

            if "keys" not in data:
                raise RuntimeError(f"Invalid JWKS response (no keys), HTTP {response.status_code}")

            self._jwks = data
            self._jwks_last_fetched = time.time()

        return self._jwks

    def _unauthorized(self, detail: str) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )

    def verify_token(self, token: str) -> dict:
        try:
            headers = jwt.get_unverified_headers(token)
            kid = headers['kid']

            key = next((k for k in self.jwks['keys'] if k['kid'] == kid), None)
            if not key:
                raise self._unauthorized('Public key not found in JWKS')

            public_key = jwk.construct(key)

            message, encoded_signature = token.rsplit('.', 1)
            decoded_signature = base64url_decode(encoded_signature.encode())

            if not public_key.verify(message.encode(), decoded_signature):
                raise self._unauthorized('Signature verification failed')

            claims = jwt.get_unverified_claims(token)

            if time.time() > claims['exp']:
                raise self._unauthorized('Token is expired')

            # id tokens carry aud, access tokens carry client_id
            if claims.get('aud') != self.app_client_id and claims.get('client_id') != self.app_client_id:
                raise self._unauthorized('Token was not issued for this audience')

            if claims['iss'] != self.issuer:
                raise self._unauthorized('Token issuer is invalid')

            if claims.get('token_use') not in ['id', 'access']:
                raise self._unauthorized('Invalid token type')

            return claims

        except HTTPException:
            raise
        except Exception as e:
            logger.warning(f"Token verification failed: {e}")
            raise self._unauthorized(f'Unable to verify token: {str(e)}')


@lru_cache
def get_verifier() -> CognitoTokenVerifier:
    settings = get_settings()
    return CognitoTokenVerifier(
        region=settings.aws_region,
        user_pool_id=settings.cognito_user_pool_id,
        app_client_id=settings.cognito_app_client_id,
    )
