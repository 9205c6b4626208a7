# backend/main.py
import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

load_dotenv()

from config import settings
from database import init_db
from services.errors import Internal, InventoryError, Unauthorized
from utils.clock import utcnow

# Router imports
from routes.auth import router as auth_router
from routes.products import router as products_router
from routes.movements import router as movements_router
from routes.users import router as users_router
from routes.stats import router as stats_router
from routes.logs import router as logs_router

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("inventory")


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(title="Inventory Tracker API", version="1.0.0", lifespan=lifespan)

# CORS Configuration
origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]
if settings.FRONTEND_URL:
    origins.append(settings.FRONTEND_URL)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Error mapping: every service error keeps its kind and status
@app.exception_handler(InventoryError)
async def inventory_error_handler(request: Request, exc: InventoryError):
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthorized) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "kind": exc.kind},
        headers=headers,
    )


# Store failures are logged in full but reported without storage details
@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=Internal.status_code,
        content={"detail": "Internal server error", "kind": Internal.kind},
    )


# Router registration
app.include_router(auth_router)
app.include_router(products_router)
app.include_router(movements_router)
app.include_router(users_router)
app.include_router(stats_router)
app.include_router(logs_router)


@app.get("/health")
def health():
    return {"status": "ok", "timestamp": utcnow().isoformat()}
