from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


# Identifier fields are optional here so that missing ids reach the service
# and come back as invalid_input (400) instead of a 422 validation error.


class FriendRequestCreate(BaseModel):

    senderId: Optional[str] = None
    recipientId: Optional[str] = None


class FriendRequestAction(BaseModel):

    requestId: Optional[str] = None
    userId: Optional[str] = None


class UnfriendRequest(BaseModel):

    userId: Optional[str] = None
    friendId: Optional[str] = None


class ReconcileRequest(BaseModel):

    userId: Optional[str] = None


class UserSummary(BaseModel):

    id: str
    name: Optional[str] = None
    email: Optional[str] = None


class IncomingFriendRequest(BaseModel):

    id: str
    senderId: str
    recipientId: str
    status: str
    createdAt: datetime
    sender: UserSummary


class MessageResponse(BaseModel):

    message: str


class FriendRequestCreated(MessageResponse):

    requestId: str


class PendingPeersResponse(BaseModel):

    pendingPeers: List[str]
