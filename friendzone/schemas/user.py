from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class UserBase(BaseModel):

    email: EmailStr


class UserCreate(UserBase):

    name: str = Field(min_length=1)
    password: str = Field(min_length=6)


class UserLogin(UserBase):

    password: str


class UserPublic(UserBase):

    id: str
    name: str


class LoginResponse(BaseModel):

    success: bool = True
    token: str
    userId: str
    username: Optional[str] = None
