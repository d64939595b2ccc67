from typing import Optional

from bson import ObjectId
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from friendzone.database.connection import mongo_db_dependency
from friendzone.repositories.user_repository import UserRepository
from friendzone.utils.security import decode_access_token


bearer_scheme = HTTPBearer(auto_error=False)


class TokenRejected(Exception):
    """Missing or invalid bearer token; rendered as a top-level 401 body in main."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


async def get_token_payload(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> dict:
    if credentials is None or not credentials.credentials:
        raise TokenRejected("No token provided")
    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise TokenRejected("Invalid token")
    return payload


async def get_current_user(payload: dict = Depends(get_token_payload), db = Depends(mongo_db_dependency)) -> dict:
    user = await UserRepository(db).get_user_by_id(payload.get("sub"))
    if user is None:
        raise TokenRejected("Invalid token")
    return user


def ensure_caller(current_user: dict, acting_id: Optional[str]) -> None:
    # missing or malformed ids are left to the service, which answers invalid_input
    if acting_id and ObjectId.is_valid(acting_id) and acting_id != current_user["_id"]:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Cannot act on behalf of another user")
