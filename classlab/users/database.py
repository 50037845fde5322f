from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError
from typing import List, Optional

from classlab import errors
from classlab.auth.auth_utils import hash_password, verify_password
from classlab.common import generate_id, utcnow
from classlab.users.models import UserRole

PUBLIC_FIELDS = {"_id": 0, "password_hash": 0}


async def create_user(
    db: AsyncIOMotorDatabase,
    data: dict,
    role: UserRole,
    added_by: Optional[str] = None
) -> dict:
    """Create an account; email must be unique"""
    email = data["email"].strip().lower()
    if await db.users.find_one({"email": email}):
        raise errors.ValidationError(f"User with email {email} already exists")

    if role == UserRole.STUDENT and not (data.get("reg_number") or "").strip():
        raise errors.ValidationError("Registration number is required for students")

    user = {
        "user_id": generate_id("USR"),
        "name": data["name"].strip(),
        "email": email,
        "password_hash": hash_password(data["password"]),
        "role": UserRole(role).value,
        # Faculty and admins never carry a registration number
        "reg_number": data.get("reg_number") if role == UserRole.STUDENT else None,
        "added_by": added_by,
        "created_at": utcnow()
    }

    try:
        await db.users.insert_one(user)
    except DuplicateKeyError:
        raise errors.ValidationError(f"User with email {email} already exists")

    user.pop("_id", None)
    user.pop("password_hash", None)
    return user


async def get_user(db: AsyncIOMotorDatabase, user_id: str) -> Optional[dict]:
    return await db.users.find_one({"user_id": user_id}, PUBLIC_FIELDS)


async def get_user_by_email(db: AsyncIOMotorDatabase, email: str) -> Optional[dict]:
    """Includes password_hash, for login only"""
    return await db.users.find_one({"email": email.strip().lower()})


async def list_users(db: AsyncIOMotorDatabase, role: UserRole, added_by: Optional[str] = None) -> List[dict]:
    query = {"role": UserRole(role).value}
    if added_by:
        query["added_by"] = added_by
    cursor = db.users.find(query, PUBLIC_FIELDS).sort("name", 1)
    return await cursor.to_list(length=None)


async def update_user(db: AsyncIOMotorDatabase, user_id: str, updates: dict) -> dict:
    updates = {k: v for k, v in updates.items() if v is not None}
    if updates:
        await db.users.update_one({"user_id": user_id}, {"$set": updates})
    user = await get_user(db, user_id)
    if not user:
        raise errors.NotFound("User not found")
    return user


async def delete_user(db: AsyncIOMotorDatabase, user_id: str, role: UserRole, added_by: Optional[str] = None) -> None:
    query = {"user_id": user_id, "role": UserRole(role).value}
    if added_by:
        query["added_by"] = added_by
    result = await db.users.delete_one(query)
    if result.deleted_count == 0:
        raise errors.NotFound(f"{UserRole(role).value.capitalize()} not found")


async def set_password(db: AsyncIOMotorDatabase, user_id: str, new_password: str) -> None:
    result = await db.users.update_one(
        {"user_id": user_id},
        {"$set": {"password_hash": hash_password(new_password), "password_changed_at": utcnow()}}
    )
    if result.matched_count == 0:
        raise errors.NotFound("User not found")


async def change_password(db: AsyncIOMotorDatabase, user_id: str, current_password: str, new_password: str) -> None:
    """Re-hash only after the current password checks out"""
    user = await db.users.find_one({"user_id": user_id}, {"_id": 0, "password_hash": 1})
    if not user:
        raise errors.NotFound("User not found")
    if not verify_password(current_password, user.get("password_hash", "")):
        raise errors.ValidationError("Current password is incorrect")
    await set_password(db, user_id, new_password)
