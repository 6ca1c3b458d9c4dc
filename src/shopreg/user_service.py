"""User API: list users, create user, get user by id, user existence probe."""

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from shopreg.config import load_config
from shopreg.errors import NotFoundError, install_error_handlers, parse_id
from shopreg.packet_log import ensure_file_logger, log_request_packet, log_response_packet
from shopreg.schemas import Failure, User, UserCreate, UserExists
from shopreg.store import RecordStore

logger = logging.getLogger(__name__)

router = APIRouter()


def get_user_store(request: Request) -> RecordStore[User]:
    return request.app.state.user_store


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("user service startup")
    try:
        yield
    finally:
        logger.info("user service shutdown with %d user(s) in memory", app.state.user_store.count())


@router.get("/users", response_model=list[User])
def list_users(store: RecordStore[User] = Depends(get_user_store)) -> JSONResponse:
    payload = [user.model_dump(mode="json") for user in store.list_all()]
    log_response_packet(logger, "GET /users", payload)
    return JSONResponse(content=payload)


@router.post("/users", response_model=User, status_code=201, responses={400: {"model": Failure}})
def create_user(body: UserCreate, store: RecordStore[User] = Depends(get_user_store)) -> JSONResponse:
    """Add a user. The id comes from the store counter; any id in the body is ignored."""
    log_request_packet(logger, "POST /users", body.model_dump(mode="json"))

    user = store.create(body)

    payload = user.model_dump(mode="json")
    log_response_packet(logger, "POST /users", payload)
    return JSONResponse(status_code=201, content=payload)


@router.get("/users/{user_id}", response_model=User, responses={400: {"model": Failure}, 404: {"model": Failure}})
def get_user(user_id: str, store: RecordStore[User] = Depends(get_user_store)) -> JSONResponse:
    route = f"GET /users/{user_id}"
    log_request_packet(logger, route, {"user_id": user_id})

    user = store.get(parse_id(user_id, "user ID"))
    if user is None:
        raise NotFoundError("User not found")

    payload = user.model_dump(mode="json")
    log_response_packet(logger, route, payload)
    return JSONResponse(content=payload)


@router.get("/users/{user_id}/exists", response_model=UserExists, responses={400: {"model": Failure}})
def user_exists(user_id: str, store: RecordStore[User] = Depends(get_user_store)) -> JSONResponse:
    """Existence probe answering the order service's remote oracle."""
    route = f"GET /users/{user_id}/exists"
    log_request_packet(logger, route, {"user_id": user_id})

    parsed = parse_id(user_id, "user ID")
    answer = UserExists(user_id=parsed, exists=store.get(parsed) is not None)

    payload = answer.model_dump(mode="json")
    log_response_packet(logger, route, payload)
    return JSONResponse(content=payload)


def create_app(user_store: RecordStore[User] | None = None, config: dict[str, Any] | None = None) -> FastAPI:
    """Build the user service. Run with: uvicorn shopreg.user_service:create_app --factory"""
    config = config or load_config()
    logging_config = config["logging"]
    ensure_file_logger(logger, logging_config["user_log"], logging_config["format"])

    app = FastAPI(
        title="User Registry API",
        version="1.0.0",
        description="In-memory user registry",
        lifespan=lifespan,
    )
    app.state.user_store = user_store if user_store is not None else RecordStore(User)
    install_error_handlers(app, logger)
    app.include_router(router)
    return app
