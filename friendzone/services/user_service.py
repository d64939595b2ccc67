import logging
from typing import List, Optional

from pymongo.errors import DuplicateKeyError

from friendzone.repositories.user_repository import UserRepository
from friendzone.schemas.user import LoginResponse, UserPublic
from friendzone.utils.security import create_access_token, hash_password, verify_password


logger = logging.getLogger(__name__)


class UserAlreadyExists(ValueError):
    pass


class UserNotFound(LookupError):
    pass


class InvalidCredentials(ValueError):
    pass


class UserService:
    """Credential service and user directory."""

    def __init__(self, user_repository: UserRepository):
        self.user_repository = user_repository

    async def register_user(self, name: str, email: str, password: str) -> UserPublic:
        """
        Register a new user.
        - email and name must both be unused
        - the password is stored as a bcrypt hash
        - relationship fields start empty
        """
        if await self.user_repository.get_user_by_email(email):
            raise UserAlreadyExists("User already exists")
        if await self.user_repository.get_user_by_name(name):
            raise UserAlreadyExists("Name already in use")

        try:
            new_id = await self.user_repository.create_user(
                name=name,
                email=email,
                hashed_password=hash_password(password),
            )
        except DuplicateKeyError as exc:
            # lost a race with a concurrent registration
            raise UserAlreadyExists("User already exists") from exc

        logger.info("Registered user %s", new_id)
        return UserPublic(id=new_id, name=name, email=email)

    async def login(self, email: str, password: str) -> LoginResponse:
        """
        Verify credentials and issue a bearer token.
        """
        user = await self.user_repository.get_user_by_email(email)
        if not user:
            raise UserNotFound("User not found")

        if not verify_password(password, user.get("hashed_password", "")):
            raise InvalidCredentials("Invalid credentials")

        token = create_access_token({"sub": user["_id"], "email": user["email"], "username": user.get("name")})
        return LoginResponse(token=token, userId=user["_id"], username=user.get("name"))

    async def list_users(self, search: Optional[str] = None, exclude_user_id: Optional[str] = None) -> List[dict]:
        return await self.user_repository.list_users(search=search, exclude_user_id=exclude_user_id)
