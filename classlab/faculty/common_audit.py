from datetime import datetime
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel

from classlab.auth.permissions import UserContext
from classlab.common import utcnow


class AuditLog(BaseModel):
    actor_user_id: str
    role: str
    action: str
    target_type: str
    target_id: str
    metadata: dict = {}
    timestamp: datetime


async def log_audit(
    db: AsyncIOMotorDatabase,
    actor: UserContext,
    action: str,
    target_type: str,
    target_id: str,
    metadata: dict = None
):
    """
    Log destructive or important faculty/admin actions for auditability

    Args:
        actor: UserContext of the faculty or admin
        action: Action performed (e.g., 'create_contest', 'delete_assignment')
        target_type: Resource type (e.g., 'contest', 'problem', 'student')
        target_id: ID of the resource
        metadata: Additional context (optional)
    """
    audit_log = AuditLog(
        actor_user_id=actor.user_id,
        role=actor.role,
        action=action,
        target_type=target_type,
        target_id=target_id,
        metadata=metadata or {},
        timestamp=utcnow()
    )

    await db.audit_logs.insert_one(audit_log.dict())


async def get_audit_trail(
    db: AsyncIOMotorDatabase,
    actor_user_id: Optional[str] = None,
    target_type: Optional[str] = None,
    target_id: Optional[str] = None,
    limit: int = 100
):
    query = {}

    if actor_user_id:
        query["actor_user_id"] = actor_user_id
    if target_type:
        query["target_type"] = target_type
    if target_id:
        query["target_id"] = target_id

    cursor = db.audit_logs.find(query, {"_id": 0}).sort("timestamp", -1).limit(limit)
    return await cursor.to_list(length=limit)
