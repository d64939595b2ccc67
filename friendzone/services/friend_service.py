import logging
from typing import Any, Dict, List, NamedTuple, Optional

from bson import ObjectId

from friendzone.repositories.relationship_store import RelationshipStore
from friendzone.services.errors import (
    DuplicateRequest,
    FriendGraphError,
    InvalidInput,
    InvalidState,
    NotFound,
)


logger = logging.getLogger(__name__)


class Outcome(NamedTuple):
    status_code: int
    code: str


_OUTCOMES = {
    InvalidInput: Outcome(400, InvalidInput.code),
    InvalidState: Outcome(400, InvalidState.code),
    NotFound: Outcome(404, NotFound.code),
    DuplicateRequest: Outcome(409, DuplicateRequest.code),
}

INTERNAL_ERROR = Outcome(500, "internal_error")


def outcome_for(error: BaseException) -> Outcome:
    """Map an error to the stable API outcome clients see."""
    for error_type, outcome in _OUTCOMES.items():
        if isinstance(error, error_type):
            return outcome
    return INTERNAL_ERROR


def parse_id(value: Optional[str], field: str) -> ObjectId:
    if not value:
        raise InvalidInput(f"{field} is required")
    if not isinstance(value, str) or not ObjectId.is_valid(value):
        raise InvalidInput(f"{field} is not a valid id")
    return ObjectId(value)


class FriendGraphService:
    """Request/response adapter over :class:`RelationshipStore`.

    Only checks that identifiers are well formed before forwarding; every
    domain error from the store propagates unchanged.
    """

    def __init__(self, store: RelationshipStore):
        self.store = store

    async def send_request(self, sender_id: Optional[str], recipient_id: Optional[str]) -> str:
        sender = parse_id(sender_id, "senderId")
        recipient = parse_id(recipient_id, "recipientId")
        if sender == recipient:
            raise InvalidInput("Cannot send a friend request to yourself")
        return await self.store.send_request(sender, recipient)

    async def incoming_requests(self, user_id: Optional[str]) -> List[Dict[str, Any]]:
        user = parse_id(user_id, "userId")
        results = []
        for request, sender in await self.store.list_incoming(user):
            results.append({
                "id": str(request["_id"]),
                "senderId": str(request["sender_id"]),
                "recipientId": str(request["recipient_id"]),
                "status": request["status"],
                "createdAt": request["created_at"],
                "sender": sender,
            })
        return results

    async def accept_request(self, request_id: Optional[str], user_id: Optional[str]) -> None:
        request = parse_id(request_id, "requestId")
        user = parse_id(user_id, "userId")
        await self.store.accept(request, user)

    async def reject_request(self, request_id: Optional[str], user_id: Optional[str]) -> None:
        request = parse_id(request_id, "requestId")
        user = parse_id(user_id, "userId")
        await self.store.reject(request, user)

    async def friends(self, user_id: Optional[str]) -> List[Dict[str, Any]]:
        user = parse_id(user_id, "userId")
        return await self.store.list_friends(user)

    async def unfriend(self, user_id: Optional[str], friend_id: Optional[str]) -> None:
        user = parse_id(user_id, "userId")
        friend = parse_id(friend_id, "friendId")
        if user == friend:
            raise InvalidInput("Cannot unfriend yourself")
        await self.store.unfriend(user, friend)

    async def reconcile_pending(self, user_id: Optional[str]) -> List[str]:
        user = parse_id(user_id, "userId")
        peers = await self.store.rebuild_pending_peers(user)
        logger.info("Rebuilt pending peers for user %s (%d peers)", user, len(peers))
        return peers


def error_body(error: FriendGraphError) -> Dict[str, str]:
    outcome = outcome_for(error)
    if outcome is INTERNAL_ERROR:
        # storage details stay in the logs
        return {"code": outcome.code, "message": "Internal server error"}
    return {"code": outcome.code, "message": error.message}
