# main.py
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from coopvote.config import Settings, get_settings
from coopvote.database.connection import Database
from coopvote.errors import Internal, VotingError
from coopvote.routes.auth_routes import auth_router
from coopvote.routes.election_routes import router as election_router
from coopvote.routes.election_routes import voting_router
from coopvote.routes.vote_routes import vote_router
from coopvote.utils import utcnow

logger = logging.getLogger(__name__)


# ==============================================================================
# SECTION 1: LIFECYCLE
# ==============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    # A handle passed to create_app belongs to the caller; one opened here is ours to close
    owned = app.state.db is None
    if owned:
        app.state.db = Database.from_settings(app.state.settings)
    yield
    if owned:
        app.state.db.close()
        app.state.db = None


# ==============================================================================
# SECTION 2: ERROR HANDLERS
# ==============================================================================

async def voting_error_handler(request: Request, exc: VotingError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    detail = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return JSONResponse(status_code=400, content={"error": f"Invalid request: {detail}"})


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    internal = Internal()
    return JSONResponse(status_code=internal.status_code, content={"error": internal.message})


# ==============================================================================
# SECTION 3: FASTAPI APPLICATION
# ==============================================================================

def create_app(
    settings: Optional[Settings] = None,
    db: Optional[Database] = None,
    clock: Callable[[], datetime] = utcnow,
) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    app = FastAPI(title="COOPVOTE - Ballot Casting and Results API", lifespan=lifespan)
    app.state.settings = settings
    app.state.db = db
    app.state.clock = clock

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(VotingError, voting_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(auth_router)
    app.include_router(vote_router)
    app.include_router(election_router)
    app.include_router(voting_router)

    @app.get("/health", tags=["General"])
    def health_check():
        return {"status": "healthy", "database": "MongoDB"}

    @app.get("/", tags=["Root"])
    def read_root():
        return {"message": "Welcome to the COOPVOTE API"}

    @app.get("/favicon.ico", include_in_schema=False)
    def favicon():
        return Response(status_code=204)

    return app


app = create_app()
