from typing import List, Optional

from fastapi import APIRouter, Depends, status

from friendzone.database.connection import mongo_db_dependency
from friendzone.repositories.relationship_store import RelationshipStore
from friendzone.schemas.friend import (
    FriendRequestAction,
    FriendRequestCreate,
    FriendRequestCreated,
    IncomingFriendRequest,
    MessageResponse,
    PendingPeersResponse,
    ReconcileRequest,
    UnfriendRequest,
    UserSummary,
)
from friendzone.services.friend_service import FriendGraphService
from friendzone.utils.dependencies import ensure_caller, get_current_user

router = APIRouter(tags=["friend"])

def get_friend_service(db = Depends(mongo_db_dependency)):
    return FriendGraphService(RelationshipStore(db))

@router.post("/friend-request", status_code=status.HTTP_201_CREATED, response_model=FriendRequestCreated)
async def send_friend_request(payload: FriendRequestCreate, current_user: dict = Depends(get_current_user), service: FriendGraphService = Depends(get_friend_service)):
    ensure_caller(current_user, payload.senderId)
    request_id = await service.send_request(payload.senderId, payload.recipientId)
    return {"message": "Friend request sent successfully", "requestId": request_id}

@router.get("/friend-requests", response_model=List[IncomingFriendRequest])
async def received_friend_requests(userId: Optional[str] = None, current_user: dict = Depends(get_current_user), service: FriendGraphService = Depends(get_friend_service)):
    ensure_caller(current_user, userId)
    return await service.incoming_requests(userId)

@router.post("/accept-friend-request", response_model=MessageResponse)
async def accept_friend_request(payload: FriendRequestAction, current_user: dict = Depends(get_current_user), service: FriendGraphService = Depends(get_friend_service)):
    ensure_caller(current_user, payload.userId)
    await service.accept_request(payload.requestId, payload.userId)
    return {"message": "Friend request accepted"}

@router.post("/reject-friend-request", response_model=MessageResponse)
async def reject_friend_request(payload: FriendRequestAction, current_user: dict = Depends(get_current_user), service: FriendGraphService = Depends(get_friend_service)):
    ensure_caller(current_user, payload.userId)
    await service.reject_request(payload.requestId, payload.userId)
    return {"message": "Friend request rejected"}

@router.get("/friends", response_model=List[UserSummary])
async def friend_list(userId: Optional[str] = None, current_user: dict = Depends(get_current_user), service: FriendGraphService = Depends(get_friend_service)):
    ensure_caller(current_user, userId)
    return await service.friends(userId)

@router.post("/unfriend", response_model=MessageResponse)
async def unfriend(payload: UnfriendRequest, current_user: dict = Depends(get_current_user), service: FriendGraphService = Depends(get_friend_service)):
    ensure_caller(current_user, payload.userId)
    await service.unfriend(payload.userId, payload.friendId)
    return {"message": "Unfriended successfully"}

@router.post("/friend-requests/reconcile", response_model=PendingPeersResponse)
async def reconcile_pending_peers(payload: ReconcileRequest, current_user: dict = Depends(get_current_user), service: FriendGraphService = Depends(get_friend_service)):
    ensure_caller(current_user, payload.userId)
    peers = await service.reconcile_pending(payload.userId)
    return {"pendingPeers": peers}
