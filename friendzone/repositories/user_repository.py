import re
from typing import List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING

from friendzone.models.user import UserDocument


PUBLIC_PROJECTION = {"name": 1, "email": 1}


class UserRepository:

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._collection = db.get_collection("users")

    async def ensure_indexes(self) -> None:
        await self._collection.create_index([("email", ASCENDING)], unique=True)
        await self._collection.create_index([("name", ASCENDING)], unique=True)

    async def create_user(self, name: str, email: str, hashed_password: str) -> str:

        doc = {
            "name": name,
            "email": email,
            "hashed_password": hashed_password,
            "friends": [],
            "pending_peers": [],
        }
        result = await self._collection.insert_one(doc)
        return str(result.inserted_id)

    async def get_user_by_email(self, email: str) -> Optional[UserDocument]:

        user = await self._collection.find_one({"email": email})
        if user:
            user["_id"] = str(user["_id"])  # normalize to string for API layer
        return user

    async def get_user_by_name(self, name: str) -> Optional[dict]:

        user = await self._collection.find_one({"name": name}, PUBLIC_PROJECTION)
        if user:
            user["_id"] = str(user["_id"])
        return user

    async def list_users(self, search: Optional[str] = None, exclude_user_id: Optional[str] = None) -> List[dict]:

        query: dict = {}
        if search:
            query["name"] = {"$regex": re.escape(search), "$options": "i"}
        if exclude_user_id and ObjectId.is_valid(exclude_user_id):
            query["_id"] = {"$ne": ObjectId(exclude_user_id)}

        results = []
        async for doc in self._collection.find(query, PUBLIC_PROJECTION):
            results.append({"id": str(doc["_id"]), "name": doc.get("name"), "email": doc.get("email")})
        return results

    async def get_user_by_id(self, user_id: Optional[str]) -> Optional[UserDocument]:

        if not user_id or not ObjectId.is_valid(user_id):
            return None
        user = await self._collection.find_one({"_id": ObjectId(user_id)}, PUBLIC_PROJECTION)
        if user:
            user["_id"] = str(user["_id"])
        return user
