from typing import List, TypedDict

from bson import ObjectId


class UserDocument(TypedDict, total=False):

    _id: ObjectId
    name: str
    email: str
    hashed_password: str
    # relationship fields, written only by RelationshipStore
    friends: List[ObjectId]
    pending_peers: List[ObjectId]
