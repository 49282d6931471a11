# donordrive/main.py
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from donordrive.core.errors import ApiError
from donordrive.core.logging_config import configure_logging
from donordrive.deps import close_client, get_repo
from donordrive.routers import auth, donations, driver, leaderboard, users

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    repo = app.dependency_overrides.get(get_repo, get_repo)()
    await repo.ensure_indexes()
    logger.info("DonorDrive API started with %s", type(repo).__name__)
    yield
    close_client()


app = FastAPI(lifespan=lifespan, title="DonorDrive API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return JSONResponse({"detail": exc.detail}, status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    where = ".".join(str(p) for p in first.get("loc", ())[1:])
    msg = first.get("msg", "Invalid request")
    return JSONResponse({"detail": f"{where}: {msg}" if where else msg}, status_code=400)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse({"detail": "Server error", "error": str(exc)}, status_code=500)


# ---------------- Include routers ----------------
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(donations.router)
app.include_router(driver.router)
app.include_router(leaderboard.router)


@app.get("/")
def read_root():
    return {"message": "Welcome to the DonorDrive API"}


# Health
@app.get("/health")
def health():
    return {"ok": True}


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
