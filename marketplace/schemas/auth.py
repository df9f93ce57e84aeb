from pydantic import (
    BaseModel, Field, PositiveInt,
    EmailStr, SecretStr
)
from typing import Annotated

Name     = Annotated[str,       Field(min_length=1, max_length=255)]
Password = Annotated[SecretStr, Field(min_length=8, max_length=128)]


class UserBase(BaseModel):
    name:  Name
    email: EmailStr


class UserCreate(UserBase):
    password: Password


class UserRead(UserBase):
    id: PositiveInt

    model_config = {
        "from_attributes": True,
        "extra": "forbid",
    }


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class TokenData(BaseModel):
    user_id: PositiveInt
    name: Annotated[str, Field(min_length=1, max_length=255)]
    email: EmailStr
