from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from classlab import config
from classlab.errors import ClasslabError
from classlab.dependencies import close_client, get_db_instance
from classlab.system.database_setup import create_indexes
from classlab.system.logger_config import get_logger, setup_logging

from classlab.auth.auth_router import router as auth_router
from classlab.problems.problem_router import router as problem_router
from classlab.contests.contest_router import router as contest_router
from classlab.assignments.assignment_router import router as assignment_router
from classlab.submissions.submission_router import router as submission_router
from classlab.leaderboard.leaderboard_router import router as leaderboard_router
from classlab.dashboard.dashboard_router import router as dashboard_router
from classlab.faculty.faculty_router import router as faculty_router
from classlab.admin.admin_router import router as admin_router
from classlab.system.health_router import router as health_router

setup_logging(level=config.LOG_LEVEL)
logger = get_logger(__name__)

app = FastAPI(title="Classlab Coding Practice Platform")


@app.on_event("startup")
async def startup_event():
    await create_indexes(get_db_instance())


@app.on_event("shutdown")
async def shutdown_event():
    close_client()


app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"]
)

# ==================== ERROR HANDLERS ====================

@app.exception_handler(ClasslabError)
async def classlab_error_handler(request: Request, exc: ClasslabError):
    if exc.status_code >= 500:
        logger.warning("%s %s -> %s: %s", request.method, request.url.path, exc.kind, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    problems = exc.errors()
    first = problems[0] if problems else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    if location:
        message = f"{location}: {message}"

    return JSONResponse(
        status_code=400,
        content={"error": "ValidationError", "reason": None, "message": message}
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal",
            "reason": None,
            "message": str(exc) if config.DEBUG else "Internal server error"
        }
    )

# ==================== ROUTER REGISTRATION ====================
app.include_router(auth_router)
app.include_router(problem_router)
app.include_router(contest_router)
app.include_router(assignment_router)
app.include_router(submission_router)
app.include_router(leaderboard_router)
app.include_router(dashboard_router)
app.include_router(faculty_router)
app.include_router(admin_router)
app.include_router(health_router)
# ============================================================
