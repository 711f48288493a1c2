import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv
import uvicorn

from database import check_connection, init_db
from routers import notes_router, wallet_router
from services.hashing import ensure_digest_available

# Load .env
load_dotenv()
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
AUTO_CREATE_TABLES = os.getenv("AUTO_CREATE_TABLES", "true").lower() == "true"

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("notes_ledger")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # A broken hash primitive must stop startup; HashingFailure propagates
    ensure_digest_available()
    if AUTO_CREATE_TABLES:
        init_db()
    logger.info("Note ledger API started")
    yield


# App instance
app = FastAPI(title="Note Ledger API", lifespan=lifespan)

# CORS
origins = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials="*" not in origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(notes_router)
app.include_router(wallet_router)


@app.get("/health")
def health():
    database_ok = check_connection()
    return {"status": "ok" if database_ok else "degraded", "database": database_ok}


# Fallback for anything the routers did not translate
@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


if __name__ == "__main__":
    port = int(os.getenv("PORT", 10000))
    uvicorn.run("main:app", host="0.0.0.0", port=port, reload=True)
