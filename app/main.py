"""
Main FastAPI application
Quiz answer grading engine: question store, submission grading and grade records
"""
from fastapi import FastAPI, Request, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
import time

from app.config import settings
from app.database import init_db
from app.api import quizzes, submissions
from app.services.exceptions import GradingError, InconsistentQuestionReference, PersistenceFailure

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Domain errors that reach the HTTP layer; per-question errors never do
ERROR_STATUS = {
    InconsistentQuestionReference: (422, "inconsistent_question_reference"),
    PersistenceFailure: (503, "persistence_failure"),
}

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Deterministic, auditable grading of quiz submissions",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def error_response(status_code: int, error: str, message, **extra) -> JSONResponse:
    """Uniform JSON error body used by every exception handler"""
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "message": message, "status_code": status_code, **extra}
    )


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log every request with its status and duration"""
    started = time.perf_counter()
    response = await call_next(request)

    logger.info(
        f"{request.method} {request.url.path} - "
        f"Status: {response.status_code} - "
        f"Duration: {time.perf_counter() - started:.3f}s"
    )
    return response


@app.exception_handler(GradingError)
async def grading_error_handler(request: Request, exc: GradingError):
    """Map structural grading failures to client or retryable errors"""
    status_code, error = ERROR_STATUS.get(type(exc), (500, "grading_error"))

    if status_code >= 500:
        logger.error(f"{error} on {request.url.path}: {exc.message}")
        message = "The grade could not be recorded. Please retry." if status_code == 503 else exc.message
        return error_response(
            status_code, error, message,
            submission_id=getattr(exc, "submission_id", None),
            detail=exc.message if settings.DEBUG else None,
        )

    logger.warning(f"Rejected {request.url.path}: {exc.message}")
    return error_response(status_code, error, exc.message, question_id=exc.question_id)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Format HTTP exceptions consistently"""
    return error_response(exc.status_code, "http_error", exc.detail)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unexpected errors gracefully"""
    logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)

    return error_response(
        500, "internal_server_error",
        "An unexpected error occurred. Please try again later.",
        detail=str(exc) if settings.DEBUG else None,
    )


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring"""
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": time.time()
    }


@app.get("/")
async def root():
    """Root endpoint with API information"""
    return {
        "message": "Quiz Grading Engine API",
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "health": "/health"
    }


app.include_router(quizzes.router)
app.include_router(submissions.router)


@app.on_event("startup")
async def startup_event():
    """Create tables on startup"""
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    try:
        init_db()
    except Exception as e:
        logger.error(f"Failed to initialize database: {str(e)}")
        raise

    logger.info("Application startup complete")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Shutting down application")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
