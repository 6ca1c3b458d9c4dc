"""Order API: list/create orders, get order by id, list orders of a user.

Creating an order first asks the existence oracle whether the user exists.
The oracle call happens before the store lock is taken, so a slow user
service never holds up other store operations.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from shopreg.config import load_config
from shopreg.errors import (
    NotFoundError,
    OracleUnavailable,
    ReferentialError,
    install_error_handlers,
    parse_id,
)
from shopreg.oracle import ExistenceOracle, build_oracle
from shopreg.packet_log import ensure_file_logger, log_request_packet, log_response_packet
from shopreg.schemas import Failure, Order, OrderCreate
from shopreg.store import RecordStore

logger = logging.getLogger(__name__)

router = APIRouter()


def get_order_store(request: Request) -> RecordStore[Order]:
    return request.app.state.order_store


def get_oracle(request: Request) -> ExistenceOracle:
    return request.app.state.oracle


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("order service startup (oracle=%s)", type(app.state.oracle).__name__)
    try:
        yield
    finally:
        logger.info("order service shutdown with %d order(s) in memory", app.state.order_store.count())


def _check_user(request: Request, oracle: ExistenceOracle, user_id: int) -> None:
    """Raise ReferentialError unless the oracle confirms ``user_id``."""
    try:
        known = oracle.exists(user_id)
    except OracleUnavailable:
        if not request.app.state.fail_open:
            raise
        logger.warning("User service unavailable, accepting order for unverified user %s", user_id)
        return
    if not known:
        raise ReferentialError("User not found")


@router.get("/orders", response_model=list[Order])
def list_orders(store: RecordStore[Order] = Depends(get_order_store)) -> JSONResponse:
    payload = [order.model_dump(mode="json") for order in store.list_all()]
    log_response_packet(logger, "GET /orders", payload)
    return JSONResponse(content=payload)


@router.post(
    "/orders",
    response_model=Order,
    status_code=201,
    responses={400: {"model": Failure}, 503: {"model": Failure}},
)
def create_order(
    body: OrderCreate,
    request: Request,
    store: RecordStore[Order] = Depends(get_order_store),
    oracle: ExistenceOracle = Depends(get_oracle),
) -> JSONResponse:
    """Add an order for an existing user. Nothing is stored when the check fails."""
    log_request_packet(logger, "POST /orders", body.model_dump(mode="json"))

    _check_user(request, oracle, body.user_id)
    order = store.create(body)

    payload = order.model_dump(mode="json")
    log_response_packet(logger, "POST /orders", payload)
    return JSONResponse(status_code=201, content=payload)


@router.get("/orders/user/{user_id}", response_model=list[Order], responses={400: {"model": Failure}})
def list_user_orders(user_id: str, store: RecordStore[Order] = Depends(get_order_store)) -> JSONResponse:
    """Orders placed by one user. No match is an empty list, not an error."""
    route = f"GET /orders/user/{user_id}"
    log_request_packet(logger, route, {"user_id": user_id})

    parsed = parse_id(user_id, "user ID")
    payload = [order.model_dump(mode="json") for order in store.filter_by(lambda order: order.user_id == parsed)]

    log_response_packet(logger, route, payload)
    return JSONResponse(content=payload)


@router.get("/orders/{order_id}", response_model=Order, responses={400: {"model": Failure}, 404: {"model": Failure}})
def get_order(order_id: str, store: RecordStore[Order] = Depends(get_order_store)) -> JSONResponse:
    route = f"GET /orders/{order_id}"
    log_request_packet(logger, route, {"order_id": order_id})

    order = store.get(parse_id(order_id, "order ID"))
    if order is None:
        raise NotFoundError("Order not found")

    payload = order.model_dump(mode="json")
    log_response_packet(logger, route, payload)
    return JSONResponse(content=payload)


def create_app(
    order_store: RecordStore[Order] | None = None,
    oracle: ExistenceOracle | None = None,
    config: dict[str, Any] | None = None,
) -> FastAPI:
    """Build the order service. Run with: uvicorn shopreg.order_service:create_app --factory"""
    config = config or load_config()
    logging_config = config["logging"]
    ensure_file_logger(logger, logging_config["order_log"], logging_config["format"])

    app = FastAPI(
        title="Order Registry API",
        version="1.0.0",
        description="In-memory order registry with user existence check",
        lifespan=lifespan,
    )
    app.state.order_store = order_store if order_store is not None else RecordStore(Order)
    app.state.oracle = oracle if oracle is not None else build_oracle(config)
    app.state.fail_open = bool(config["oracle"]["fail_open"])
    install_error_handlers(app, logger)
    app.include_router(router)
    return app
