from fastapi import APIRouter, Depends, HTTPException, status

from friendzone.database.connection import mongo_db_dependency
from friendzone.repositories.user_repository import UserRepository
from friendzone.schemas.user import LoginResponse, UserCreate, UserLogin, UserPublic
from friendzone.services.user_service import (
    InvalidCredentials,
    UserAlreadyExists,
    UserNotFound,
    UserService,
)
from friendzone.utils.dependencies import get_token_payload


router = APIRouter(tags=["auth"])


def get_user_service(db = Depends(mongo_db_dependency)) -> UserService:
    return UserService(UserRepository(db))


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=UserPublic)
async def register(payload: UserCreate, service: UserService = Depends(get_user_service)):
    try:
        return await service.register_user(payload.name, payload.email, payload.password)
    except UserAlreadyExists as exc:
        raise HTTPException(status_code=400, detail=str(exc))


@router.post("/login", response_model=LoginResponse)
async def login(payload: UserLogin, service: UserService = Depends(get_user_service)):
    try:
        return await service.login(payload.email, payload.password)
    except UserNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except InvalidCredentials as exc:
        raise HTTPException(status_code=400, detail=str(exc))


@router.post("/verify-token")
async def verify_token(payload: dict = Depends(get_token_payload)):
    return {"success": True, "userId": payload.get("sub")}
