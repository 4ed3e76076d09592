import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .automation import build_automation_context
from .config import ALLOWED_ORIGINS, LOG_LEVEL, AutomationSettings
from .database import SessionLocal, init_db
from .domain.automation import router as automation_router
from .domain.bookings import public_router as public_bookings_router
from .domain.bookings import router as bookings_router
from .domain.contacts import router as contacts_router
from .domain.forms import router as forms_router
from .domain.inbox import router as inbox_router
from .domain.inventory import router as inventory_router

# Configure logging
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("arq").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    init_db()

    settings = AutomationSettings.from_env()
    automation = build_automation_context(SessionLocal, settings)
    # The API stays up even when the broker is unreachable; scheduling degrades to no-ops
    await automation.start(consume=settings.run_workers)
    app.state.automation = automation

    yield

    logger.info("Application shutting down...")
    await automation.close()


app = FastAPI(title="ServiceHub API", version=__version__, lifespan=lifespan)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Validation error for {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=422, content={"detail": jsonable_encoder(exc.errors())})


@app.middleware("http")
async def log_requests(request: Request, call_next):
    try:
        response = await call_next(request)
        return response
    except Exception as e:
        logger.error(f"{request.method} {request.url.path} - Error: {str(e)}")
        raise


logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)

# Routes
app.include_router(contacts_router)
app.include_router(bookings_router)
app.include_router(public_bookings_router)
app.include_router(forms_router)
app.include_router(inventory_router)
app.include_router(inbox_router)
app.include_router(automation_router)


@app.get("/")
def root():
    return {"message": "ServiceHub API is running"}


@app.get("/health")
async def health(request: Request):
    automation = request.app.state.automation
    return {
        "status": "healthy",
        "automation": {
            "enabled": automation.settings.enabled,
            "queue": "connected" if await automation.scheduler.get_job_counts() is not None else "unavailable",
        },
    }
