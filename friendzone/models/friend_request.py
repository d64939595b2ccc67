from datetime import datetime
from typing import Literal, TypedDict

from bson import ObjectId


PENDING = "pending"
ACCEPTED = "accepted"
REJECTED = "rejected"

RequestStatus = Literal["pending", "accepted", "rejected"]


class FriendRequestDocument(TypedDict, total=False):
    _id: ObjectId
    sender_id: ObjectId
    recipient_id: ObjectId
    # "<lo>:<hi>" of the two hex ids, unique across the collection
    pair_key: str
    status: RequestStatus
    created_at: datetime


def pair_key(a: ObjectId, b: ObjectId) -> str:
    lo, hi = sorted((str(a), str(b)))
    return f"{lo}:{hi}"
