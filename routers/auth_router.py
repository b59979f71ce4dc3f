from fastapi import APIRouter, Depends, HTTPException, status

from auth_dependency import get_current_user
from routers.http_errors import http_error
from schemas.auth import SignInRequest, SignUpRequest
from services import identity
from services.errors import IdentityError


router = APIRouter(
    prefix="/auth",
    tags=["Auth"]
)


@router.post("/signup", status_code=201)
async def sign_up(request: SignUpRequest):
    try:
        user = identity.sign_up(request.email, request.password)
    except IdentityError as e:
        raise http_error(e)

    return {"status": "success", "data": user}


@router.post("/signin")
async def sign_in(request: SignInRequest):
    try:
        session = identity.sign_in(request.email, request.password)
    except IdentityError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "IdentityError", "message": e.message},
        )

    return {"status": "success", "data": session}


@router.post("/signout")
async def sign_out(current_user: dict = Depends(get_current_user)):
    try:
        identity.sign_out(current_user["access_token"])
    except IdentityError as e:
        raise http_error(e)

    return {"status": "success"}
