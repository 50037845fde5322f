from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from classlab import errors
from classlab.auth.auth_utils import create_access_token, verify_password
from classlab.auth.permissions import UserContext, get_current_user
from classlab.dependencies import get_db
from classlab.system.logger_config import get_logger
from classlab.users.models import LoginRequest
from classlab.users.database import get_user_by_email

logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/login")
async def login(data: LoginRequest, db: AsyncIOMotorDatabase = Depends(get_db)):
    """Exchange email + password for a bearer token"""
    user = await get_user_by_email(db, data.email)

    if not user or not verify_password(data.password, user.get("password_hash", "")):
        logger.info("Failed login for %s", data.email)
        raise errors.Unauthorized("Invalid email or password")

    token = create_access_token(user["user_id"], user["role"])

    return {
        "token": token,
        "token_type": "bearer",
        "user": {
            "user_id": user["user_id"],
            "name": user["name"],
            "email": user["email"],
            "role": user["role"]
        }
    }


@router.get("/profile")
async def profile(user: UserContext = Depends(get_current_user)):
    return user.profile
