#  custom login route for the app
from fastapi import APIRouter
from ..security import get_jwt_strategy, get_user_manager
from ..dependencies import current_admin
from fastapi import Depends, HTTPException, Request, status
from fastapi_users import exceptions
from ..db import get_user_db
from ..schemas.user_schema import LoginRequest, StaffCreate, UserRead
from fastapi_users.password import PasswordHelper

import asyncio
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix='/auth', tags=['auth'])


@router.post("/login")
async def login(payload: LoginRequest, user_db = Depends(get_user_db)):

    user = await user_db.get_by_email(payload.email)
    if not user or not user.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid credentials")

    pwd_helper = PasswordHelper()
    valid, new_hash = pwd_helper.verify_and_update(payload.password, user.hashed_password)

    if not valid:
        logger.info("Failed login for %s", payload.email)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid credentials")

    if new_hash:
        await user_db.update(user, {"hashed_password": new_hash})

    #  JWT token
    strategy = get_jwt_strategy()
    maybe_token = strategy.write_token(user)

    if asyncio.iscoroutine(maybe_token):
        access_token = await maybe_token
    else:
        access_token = maybe_token

    # ORM user to schema for JSON
    user_out = UserRead.model_validate(user)

    # user and token
    return {"user": user_out, "token": access_token}


# public /auth/register only ever creates students; teachers and admins are added here
@router.post("/staff", response_model=UserRead, status_code=status.HTTP_201_CREATED, dependencies=[Depends(current_admin)])
async def create_staff(payload: StaffCreate, request: Request, user_manager=Depends(get_user_manager)):
    try:
        user = await user_manager.create(payload, safe=True, request=request)
    except exceptions.UserAlreadyExists:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="A user with this email already exists")
    except exceptions.InvalidPasswordException as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.reason)

    logger.info("Admin created %s account %s", user.role.value, user.id)
    return user
