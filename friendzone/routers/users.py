from typing import List, Optional

from fastapi import APIRouter, Depends

from friendzone.routers.auth import get_user_service
from friendzone.schemas.friend import UserSummary
from friendzone.services.user_service import UserService


router = APIRouter(tags=["users"])


@router.get("/users", response_model=List[UserSummary])
async def list_users(search: Optional[str] = None, excludeUserId: Optional[str] = None, service: UserService = Depends(get_user_service)):
    return await service.list_users(search=search, exclude_user_id=excludeUserId)
