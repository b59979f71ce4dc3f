import logging

import boto3
from botocore.exceptions import ClientError

from config import get_settings
from services.errors import IdentityError

logger = logging.getLogger(__name__)


def get_cognito_client():
    return boto3.client("cognito-idp", region_name=get_settings().aws_region)


def _client_error_message(e: ClientError) -> str:
    return e.response.get("Error", {}).get("Message") or str(e)


def sign_up(email: str, password: str) -> dict:
    client = get_cognito_client()
    try:
        response = client.sign_up(
            ClientId=get_settings().cognito_app_client_id,
            Username=email,
            Password=password,
            UserAttributes=[{"Name": "email", "Value": email}],
        )
    except ClientError as e:
        logger.info(f"Sign-up rejected for {email}: {e.response['Error']['Code']}")
        raise IdentityError(_client_error_message(e))

    return {
        "user_id": response.get("UserSub"),
        "email": email,
        "confirmed": bool(response.get("UserConfirmed", False)),
    }


def sign_in(email: str, password: str) -> dict:
    client = get_cognito_client()
    try:
        response = client.initiate_auth(
            ClientId=get_settings().cognito_app_client_id,
            AuthFlow="USER_PASSWORD_AUTH",
            AuthParameters={"USERNAME": email, "PASSWORD": password},
        )
    except ClientError as e:
        logger.info(f"Sign-in rejected for {email}: {e.response['Error']['Code']}")
        raise IdentityError(_client_error_message(e))

    result = response.get("AuthenticationResult")
    if not result:
        # MFA or a forced password change; not handled by this service.
        raise IdentityError(f"Additional sign-in step required: {response.get('ChallengeName')}")

    return {
        "access_token": result["AccessToken"],
        "id_token": result.get("IdToken"),
        "refresh_token": result.get("RefreshToken"),
        "expires_in": result.get("ExpiresIn"),
        "token_type": result.get("TokenType", "Bearer"),
    }


def sign_out(access_token: str) -> None:
    client = get_cognito_client()
    try:
        client.global_sign_out(AccessToken=access_token)
    except ClientError as e:
        raise IdentityError(_client_error_message(e))
