from datetime import datetime

from pydantic import BaseModel, EmailStr, Field
from pydantic.alias_generators import to_camel

from .models import RoleEnum


class CamelModel(BaseModel):
    """Wire shapes use camelCase keys; python code uses snake_case."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class UserOut(CamelModel):
    id: int
    open_id: str
    name: str | None = None
    email: str | None = None
    login_method: str | None = None
    role: RoleEnum
    last_signed_in: datetime | None = None


class UserUpsert(CamelModel):
    open_id: str = Field(min_length=1, max_length=64)
    name: str | None = None
    email: EmailStr | None = None
    login_method: str | None = None
    role: RoleEnum | None = None
    last_signed_in: datetime | None = None


class SuccessOut(BaseModel):
    success: bool
