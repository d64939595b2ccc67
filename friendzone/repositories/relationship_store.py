import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError
from pymongo.results import InsertOneResult

from friendzone.models.friend_request import ACCEPTED, PENDING, REJECTED, FriendRequestDocument, pair_key
from friendzone.models.user import UserDocument
from friendzone.services.errors import (
    DuplicateRequest,
    InvalidInput,
    InvalidState,
    NotFound,
    StorageFailure,
)


logger = logging.getLogger(__name__)

SUMMARY_PROJECTION = {"name": 1, "email": 1}


@contextmanager
def _storage_errors(operation: str):
    try:
        yield
    except PyMongoError as exc:
        logger.exception("Storage failure during %s", operation)
        raise StorageFailure(f"Storage failure during {operation}") from exc


def user_summary(doc: UserDocument) -> Dict[str, Any]:
    return {"id": str(doc["_id"]), "name": doc.get("name"), "email": doc.get("email")}


class RelationshipStore:
    """Owns friend request records and the users' ``friends``/``pending_peers`` sets.

    MongoDB only guarantees single-document atomicity, so every operation that
    touches several documents is a sequence of idempotent set updates
    (``$addToSet``/``$pull``) with the request record deleted last. Replaying
    an operation after a partial failure converges to the same end state.
    The request records are the source of truth; ``pending_peers`` can be
    rebuilt from them with :meth:`rebuild_pending_peers`.

    ``accept``/``reject`` claim a record by moving it to its terminal status
    before the user writes. A retry of the same operation resumes a record
    already in that status, and a later ``send_request`` for the pair
    finishes whatever such a record left undone. The cost: two accepts of
    one id racing before the delete can both succeed. The end state is the
    same single friendship; only a retry after the delete sees ``NotFound``.
    """

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._requests = db.get_collection("friend_requests")
        self._users = db.get_collection("users")

    async def ensure_indexes(self) -> None:
        # one request record per unordered pair; decides concurrent sends
        await self._requests.create_index([("pair_key", ASCENDING)], unique=True)
        await self._requests.create_index([("recipient_id", ASCENDING), ("status", ASCENDING)])

    async def send_request(self, sender_id: ObjectId, recipient_id: ObjectId) -> str:
        if sender_id == recipient_id:
            raise InvalidInput("Cannot send a friend request to yourself")

        with _storage_errors("send_request"):
            sender = await self._require_user(sender_id)
            recipient = await self._require_user(recipient_id)
            if recipient_id in sender.get("friends", []) or sender_id in recipient.get("friends", []):
                raise DuplicateRequest("Users are already friends")

            key = pair_key(sender_id, recipient_id)
            result = await self._insert_request(sender_id, recipient_id, key)
            if result is None:
                # the pair's record was a finished reject; its slot is free again
                result = await self._insert_request(sender_id, recipient_id, key)
            if result is None:
                raise DuplicateRequest("Friend request already sent")

            await self._link_pending(sender_id, recipient_id)

        request_id = str(result.inserted_id)
        logger.info("Friend request %s created: %s -> %s", request_id, sender_id, recipient_id)
        return request_id

    async def list_incoming(self, user_id: ObjectId) -> List[Tuple[FriendRequestDocument, Dict[str, Any]]]:
        with _storage_errors("list_incoming"):
            cursor = self._requests.find({"recipient_id": user_id, "status": PENDING}).sort("created_at", ASCENDING)
            requests = [doc async for doc in cursor]
            if not requests:
                return []

            sender_ids = list({doc["sender_id"] for doc in requests})
            senders = {}
            async for user in self._users.find({"_id": {"$in": sender_ids}}, SUMMARY_PROJECTION):
                senders[user["_id"]] = user_summary(user)

        results = []
        for request in requests:
            sender = senders.get(request["sender_id"])
            if sender is None:
                logger.warning("Skipping request %s from missing user %s", request["_id"], request["sender_id"])
                continue
            results.append((request, sender))
        return results

    async def accept(self, request_id: ObjectId, user_id: Optional[ObjectId] = None) -> None:
        with _storage_errors("accept"):
            party = {"recipient_id": user_id} if user_id is not None else {}
            request = await self._claim(request_id, ACCEPTED, party)
            await self._finish_accept(request)

        logger.info("Friend request %s accepted: %s <-> %s", request_id, request["sender_id"], request["recipient_id"])

    async def reject(self, request_id: ObjectId, user_id: Optional[ObjectId] = None) -> None:
        with _storage_errors("reject"):
            party = {}
            if user_id is not None:
                party = {"$or": [{"sender_id": user_id}, {"recipient_id": user_id}]}
            request = await self._claim(request_id, REJECTED, party)
            await self._finish_reject(request)

        logger.info("Friend request %s rejected", request_id)

    async def list_friends(self, user_id: ObjectId) -> List[Dict[str, Any]]:
        with _storage_errors("list_friends"):
            user = await self._require_user(user_id)
            friend_ids = [fid for fid in user.get("friends", []) if fid != user_id]
            if not friend_ids:
                return []

            found = {}
            async for friend in self._users.find({"_id": {"$in": friend_ids}}, SUMMARY_PROJECTION):
                found[friend["_id"]] = friend

            stale = [fid for fid in friend_ids if fid not in found]
            if stale:
                logger.warning("Pruning %d stale friend ids from user %s", len(stale), user_id)
                await self._users.update_one({"_id": user_id}, {"$pullAll": {"friends": stale}})

        return [user_summary(found[fid]) for fid in friend_ids if fid in found]

    async def unfriend(self, user_id: ObjectId, friend_id: ObjectId) -> None:
        with _storage_errors("unfriend"):
            await self._users.update_one({"_id": user_id}, {"$pull": {"friends": friend_id}})
            await self._users.update_one({"_id": friend_id}, {"$pull": {"friends": user_id}})

    async def rebuild_pending_peers(self, user_id: ObjectId) -> List[str]:
        """Recompute ``pending_peers`` for one user from the pending request records."""
        with _storage_errors("rebuild_pending_peers"):
            await self._require_user(user_id)
            query = {"status": PENDING, "$or": [{"sender_id": user_id}, {"recipient_id": user_id}]}
            peers = []
            async for request in self._requests.find(query):
                peer = request["recipient_id"] if request["sender_id"] == user_id else request["sender_id"]
                if peer not in peers:
                    peers.append(peer)
            await self._users.update_one({"_id": user_id}, {"$set": {"pending_peers": peers}})

        return [str(peer) for peer in peers]

    async def _claim(self, request_id: ObjectId, status: str, party: Dict[str, Any]) -> FriendRequestDocument:
        # pending -> status, or resume a record a failed attempt already moved to status
        query = {"_id": request_id, "status": {"$in": [PENDING, status]}, **party}
        request = await self._requests.find_one_and_update(
            query, {"$set": {"status": status}}, return_document=ReturnDocument.AFTER
        )
        if request is not None:
            return request

        existing = await self._requests.find_one({"_id": request_id, **party})
        if existing is None:
            raise NotFound("Friend request not found")
        raise InvalidState(f"Friend request is {existing.get('status')}")

    async def _insert_request(self, sender_id: ObjectId, recipient_id: ObjectId, key: str) -> Optional[InsertOneResult]:
        """Insert a pending record for the pair.

        On a key collision the existing record decides: a pending one is a
        duplicate, a stuck accept is finished (the users are then friends), a
        stuck reject is finished and ``None`` tells the caller to insert again.
        """
        doc = {
            "sender_id": sender_id,
            "recipient_id": recipient_id,
            "pair_key": key,
            "status": PENDING,
            "created_at": datetime.now(timezone.utc),
        }
        try:
            return await self._requests.insert_one(doc)
        except DuplicateKeyError:
            existing = await self._requests.find_one({"pair_key": key})

        if existing is None:
            return None
        status = existing.get("status")
        if status == PENDING:
            # an earlier send may have stopped before linking the users
            await self._link_pending(existing["sender_id"], existing["recipient_id"])
            raise DuplicateRequest("Friend request already sent")

        logger.warning("Finishing %s request %s left behind by a failed attempt", status, existing["_id"])
        if status == ACCEPTED:
            await self._finish_accept(existing)
            raise DuplicateRequest("Users are already friends")
        await self._finish_reject(existing)
        return None

    async def _finish_accept(self, request: FriendRequestDocument) -> None:
        sender_id, recipient_id = request["sender_id"], request["recipient_id"]
        await self._users.update_one(
            {"_id": sender_id},
            {"$addToSet": {"friends": recipient_id}, "$pull": {"pending_peers": recipient_id}},
        )
        await self._users.update_one(
            {"_id": recipient_id},
            {"$addToSet": {"friends": sender_id}, "$pull": {"pending_peers": sender_id}},
        )
        await self._requests.delete_one({"_id": request["_id"], "status": ACCEPTED})

    async def _finish_reject(self, request: FriendRequestDocument) -> None:
        await self._unlink_pending(request["sender_id"], request["recipient_id"])
        await self._requests.delete_one({"_id": request["_id"], "status": REJECTED})

    async def _require_user(self, user_id: ObjectId) -> UserDocument:
        user = await self._users.find_one({"_id": user_id}, {"friends": 1, "pending_peers": 1})
        if user is None:
            raise NotFound(f"User {user_id} not found")
        return user

    async def _link_pending(self, a: ObjectId, b: ObjectId) -> None:
        await self._users.update_one({"_id": a}, {"$addToSet": {"pending_peers": b}})
        await self._users.update_one({"_id": b}, {"$addToSet": {"pending_peers": a}})

    async def _unlink_pending(self, a: ObjectId, b: ObjectId) -> None:
        await self._users.update_one({"_id": a}, {"$pull": {"pending_peers": b}})
        await self._users.update_one({"_id": b}, {"$pull": {"pending_peers": a}})
