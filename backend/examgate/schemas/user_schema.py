from fastapi_users import schemas
from examgate.models.user_model import UserRole, Gender
import uuid
from typing import Optional
from pydantic import BaseModel


class UserRead(schemas.BaseUser[uuid.UUID]):
    full_name: Optional[str] = None
    role: UserRole
    student_code: Optional[str] = None
    class_name: Optional[str] = None
    gender: Optional[Gender] = None


class UserCreate(schemas.BaseUserCreate):
    # public registration: no role field, every new account is a student
    full_name: str
    student_code: Optional[str] = None
    class_name: Optional[str] = None
    gender: Optional[Gender] = None


class StaffCreate(UserCreate):
    role: UserRole = UserRole.TEACHER


class UserUpdate(schemas.BaseUserUpdate):
    # no role here: PATCH /users/me goes through this schema
    full_name: Optional[str] = None
    student_code: Optional[str] = None
    class_name: Optional[str] = None
    gender: Optional[Gender] = None


class LoginRequest(BaseModel):
    email: str
    password: str
