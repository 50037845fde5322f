from datetime import datetime

from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from classlab.common import utcnow
from classlab.dependencies import get_db
from classlab.judge.client import JudgeClient, get_judge
from classlab.system.logger_config import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["System"])


def _elapsed_ms(start: datetime) -> float:
    return round((utcnow() - start).total_seconds() * 1000, 1)


@router.get("/health")
async def health(
    db: AsyncIOMotorDatabase = Depends(get_db),
    judge: JudgeClient = Depends(get_judge)
):
    """
    Pings the database and the judge backend.
    The service is "ok" only when the database answers.
    """
    record = {
        "timestamp": utcnow(),
        "status": {},
        "latency_ms": {}
    }

    start = utcnow()
    try:
        await db.command("ping")
        record["status"]["database"] = "UP"
    except PyMongoError as e:
        logger.error("Database ping failed: %s", e)
        record["status"]["database"] = "DOWN"
    record["latency_ms"]["database"] = _elapsed_ms(start)

    start = utcnow()
    judge_up = await judge.ping()
    record["status"][f"{judge.name}_judge"] = "UP" if judge_up else "DOWN"
    record["latency_ms"][f"{judge.name}_judge"] = _elapsed_ms(start)

    record["ok"] = record["status"]["database"] == "UP"
    return record
