from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from classlab import errors
from classlab.auth.auth_utils import verify_bearer_token
from classlab.dependencies import get_db
from classlab.users.models import UserRole


class UserContext:
    """
    Validated identity of the caller
    """
    def __init__(self, user_id: str, profile: dict):
        self.user_id = user_id
        self.name = profile.get("name")
        self.email = profile.get("email")
        self.role = profile.get("role", UserRole.STUDENT.value)
        self.reg_number = profile.get("reg_number")
        self.added_by = profile.get("added_by")
        self.profile = profile

    @property
    def is_student(self) -> bool:
        return self.role == UserRole.STUDENT.value

    @property
    def is_faculty(self) -> bool:
        return self.role == UserRole.FACULTY.value

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value


async def get_current_user(
    payload: dict = Depends(verify_bearer_token),
    db: AsyncIOMotorDatabase = Depends(get_db)
) -> UserContext:
    """
    Dependency: resolves the token subject to a stored profile

    Raises:
        401: Invalid token or unknown user
    """
    user_id = payload.get("sub")
    profile = await db.users.find_one({"user_id": user_id}, {"_id": 0, "password_hash": 0})

    if not profile:
        raise errors.Unauthorized("User no longer exists")

    return UserContext(user_id, profile)


async def require_student(user: UserContext = Depends(get_current_user)) -> UserContext:
    if not user.is_student:
        raise errors.PermissionDenied("Access denied. Student account required.")
    return user


async def require_faculty(user: UserContext = Depends(get_current_user)) -> UserContext:
    # Admins manage everything faculty can
    if not (user.is_faculty or user.is_admin):
        raise errors.PermissionDenied("Access denied. Faculty privileges required.")
    return user


async def require_admin(user: UserContext = Depends(get_current_user)) -> UserContext:
    if not user.is_admin:
        raise errors.PermissionDenied("Access denied. Admin privileges required.")
    return user


def check_ownership(doc: dict, user: UserContext, resource: str) -> dict:
    """
    Faculty may only touch what they created; admins may touch anything

    Raises:
        404: Missing document
        403: Not the owner
    """
    if not doc:
        raise errors.NotFound(f"{resource} not found")

    if not user.is_admin and doc.get("created_by") != user.user_id:
        raise errors.PermissionDenied(f"Not authorized to modify this {resource.lower()}")

    return doc
