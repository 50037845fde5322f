from motor.motor_asyncio import AsyncIOMotorDatabase

from classlab.system.logger_config import get_logger

logger = get_logger(__name__)


async def create_indexes(db: AsyncIOMotorDatabase):
    """
    Create database indexes for optimal query performance
    Called during application startup
    """

    # Users
    await db.users.create_index("user_id", unique=True)
    await db.users.create_index("email", unique=True)
    await db.users.create_index([("role", 1), ("added_by", 1)])

    # Problems
    await db.problems.create_index("problem_id", unique=True)
    await db.problems.create_index("created_by")

    # Contests
    await db.contests.create_index("contest_id", unique=True)
    await db.contests.create_index("created_by")
    await db.contests.create_index([("is_published", 1), ("start_time", 1)])
    await db.contests.create_index("problems.problem_id")

    # Assignments
    await db.assignments.create_index("assignment_id", unique=True)
    await db.assignments.create_index("created_by")
    await db.assignments.create_index([("is_published", 1), ("due_date", 1)])
    await db.assignments.create_index("problems.problem_id")

    # Enrollments: one per student per scope, join relies on it
    await db.enrollments.create_index("enrollment_id", unique=True)
    await db.enrollments.create_index(
        [("scope_type", 1), ("scope_id", 1), ("student_id", 1)],
        unique=True
    )
    await db.enrollments.create_index("student_id")

    # Submissions
    await db.submissions.create_index("submission_id", unique=True)
    await db.submissions.create_index([("enrollment_id", 1), ("seq", 1)], unique=True)
    await db.submissions.create_index([("scope_type", 1), ("scope_id", 1)])
    await db.submissions.create_index([("student_id", 1), ("submitted_at", -1)])

    # Audit logs
    await db.audit_logs.create_index("actor_user_id")
    await db.audit_logs.create_index([("target_type", 1), ("target_id", 1)])
    await db.audit_logs.create_index("timestamp")

    logger.info("Database indexes created")
