"""FastAPI application exposing the ELO leaderboard."""
from __future__ import annotations

from contextlib import asynccontextmanager
import logging
import time

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from .auth import require_admin, require_standard
from .config import Settings, load_settings
from .errors import InvalidRequest, LeaderboardError
from .service import INTERNAL_ERROR, MISSING_PARAMETERS, LeaderboardService

logger = logging.getLogger(__name__)
access_logger = logging.getLogger("elo_board.access")


class VoteRequest(BaseModel):
    # Presence is checked by the service so that a missing field gets the
    # same 400 answer as an empty one.
    winner: str | None = None
    loser: str | None = None
    object: str | None = None


class VoteResponse(BaseModel):
    message: str
    leaderboard: dict[str, int]


class MessageResponse(BaseModel):
    message: str


class StatusResponse(BaseModel):
    size_mb_logs: float
    total_requests: int
    total_models: int
    last_request: str | None


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def parse_vote_request(request: Request, service: LeaderboardService) -> VoteRequest:
    """Validate the ``/vote`` body once the caller has been authorized.

    A body that is not a JSON object of strings is treated like one with
    missing fields.
    """
    try:
        return VoteRequest.model_validate_json(await request.body())
    except ValidationError:
        service.record_error(request.url.path, MISSING_PARAMETERS)
        raise InvalidRequest(MISSING_PARAMETERS) from None


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Anything raised here aborts startup before the server accepts traffic.
    app.state.service.initialize()
    logger.info("Leaderboard service ready")
    yield


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application; usable as ``uvicorn --factory elo_board.api:create_app``."""
    settings = settings or load_settings()

    app = FastAPI(title="ELO Leaderboard API", lifespan=lifespan)
    app.state.settings = settings
    app.state.service = LeaderboardService.from_settings(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        access_logger.info(
            "%s %s %d - %.1f ms", request.method, request.url.path, response.status_code, elapsed_ms
        )
        return response

    @app.exception_handler(LeaderboardError)
    async def leaderboard_error_handler(request: Request, exc: LeaderboardError) -> JSONResponse:
        return _error(exc.status_code, exc.message)

    @app.exception_handler(Exception)
    async def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled error on %s", request.url.path, exc_info=exc)
        request.app.state.service.record_error(request.url.path, str(exc))
        return _error(500, INTERNAL_ERROR)

    @app.get("/get", response_model=dict[str, int])
    async def get_leaderboard(service: LeaderboardService = Depends(require_standard)) -> dict[str, int]:
        return await service.get()

    @app.post("/vote", response_model=VoteResponse)
    async def vote(
        request: Request,
        service: LeaderboardService = Depends(require_standard),
    ) -> VoteResponse:
        req = await parse_vote_request(request, service)
        leaderboard = await service.vote(req.winner, req.loser, req.object)
        return VoteResponse(message="Vote recorded successfully", leaderboard=leaderboard)

    @app.get("/admin/status", response_model=StatusResponse)
    async def admin_status(service: LeaderboardService = Depends(require_admin)) -> StatusResponse:
        return StatusResponse(**await service.status())

    @app.get("/admin/get-logs", response_model=list[str])
    async def admin_get_logs(service: LeaderboardService = Depends(require_admin)) -> list[str]:
        return await service.get_logs()

    @app.get("/admin/reset-leaderboard", response_model=MessageResponse)
    async def admin_reset_leaderboard(
        service: LeaderboardService = Depends(require_admin),
    ) -> MessageResponse:
        return MessageResponse(message=await service.reset_leaderboard())

    @app.get("/admin/reset-logs", response_model=MessageResponse)
    async def admin_reset_logs(service: LeaderboardService = Depends(require_admin)) -> MessageResponse:
        return MessageResponse(message=await service.reset_logs())

    return app
