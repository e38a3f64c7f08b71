# main.py
import structlog
import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from auth import auth_router
from config import get_settings
from database import init_db
from errors import AppError
from logging_config import configure_logging
from router import router

settings = get_settings()
configure_logging(settings.log_level, settings.json_logs)
logger = structlog.get_logger(__name__)

init_db()

app = FastAPI(title=settings.app_name)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router, prefix="/auth", tags=["authentication"])
app.include_router(router, tags=["expenses"])


# ---------- Error responses ----------
@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid request body"},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("unhandled_error", path=request.url.path, method=request.method)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )


@app.get("/")
def home():
    return {"message": "Welcome to Personal Expense Tracker API"}


@app.get("/health", tags=["health"])
def health():
    return {"ok": True}


if __name__ == "__main__":
    uvicorn.run(app, host=settings.host, port=settings.port)
