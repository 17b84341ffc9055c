"""HTTP surface: chat streaming, bookings, vehicle browse, health."""

from __future__ import annotations

import json
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Literal, Optional, Union

import structlog
from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, StreamingResponse
from pydantic import BaseModel, ValidationError

from toyotron.ai.tools.base import INVALID_PARAMETERS, format_validation_errors
from toyotron.app import ToyotronApp
from toyotron.bookings.models import resolve_booking_payload
from toyotron.bookings.signature import verify_signature
from toyotron.cars.models import SearchCriteria
from toyotron.cars.search import search_trims
from toyotron.core.session import bearer_token
from toyotron.errors import BookingError, ConfigurationError, StoreError
from toyotron.log import bind_request_context, get_logger
from toyotron.storage.models import UserProfile

logger = get_logger(__name__)

router = APIRouter(prefix="/api")

SIGNATURE_HEADER = "X-Signature"


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: Union[str, list[dict[str, Any]]]


class ChatRequest(BaseModel):
    messages: list[ChatMessage]


def _toyotron(request: Request) -> ToyotronApp:
    return request.app.state.toyotron


async def _read_json(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError:
        return None


@router.post("/chat")
async def chat(request: Request):
    toy = _toyotron(request)

    body = await _read_json(request)
    if not isinstance(body, dict):
        return PlainTextResponse("Invalid request body.", status_code=400)
    if not body.get("messages"):
        return PlainTextResponse("Missing messages in request body.", status_code=400)
    try:
        chat_request = ChatRequest.model_validate(body)
    except ValidationError as e:
        return JSONResponse(
            {"error": INVALID_PARAMETERS, "details": format_validation_errors(e)}, status_code=400
        )

    try:
        agent = toy.require_agent()
    except ConfigurationError as e:
        return PlainTextResponse(str(e), status_code=500)

    session = await toy.sessions.resolve(bearer_token(request.headers.get("authorization")))
    if session.user:
        structlog.contextvars.bind_contextvars(user_id=session.user.id)
    messages = [m.model_dump() for m in chat_request.messages]

    async def stream() -> AsyncIterator[str]:
        events = agent.run_turn(messages, session)
        try:
            async for event in events:
                yield json.dumps(event.to_dict()) + "\n"
        finally:
            # Client disconnects cancel this generator; abandon the turn with it
            await events.aclose()
            logger.debug("chat_stream_closed")

    return StreamingResponse(stream(), media_type="application/x-ndjson")


async def _create_booking(toy: ToyotronApp, body: Any, user: Optional[UserProfile]) -> JSONResponse:
    try:
        booking_request = resolve_booking_payload(body)
        record = await toy.bookings.create(user, booking_request)
    except BookingError as e:
        return JSONResponse({"message": e.message}, status_code=e.status)
    return JSONResponse({"booking": record.to_dict()})


@router.post("/bookings")
async def create_booking(request: Request):
    toy = _toyotron(request)
    body = await _read_json(request)
    session = await toy.sessions.resolve(bearer_token(request.headers.get("authorization")))
    return await _create_booking(toy, body, session.user)


@router.post("/webhooks/bookings")
async def booking_webhook(request: Request):
    """Signed booking requests from voice-agent integrations.

    The caller is identified by the booking's contact email.
    """
    toy = _toyotron(request)
    secret = toy.config.webhooks.signing_secret
    if not secret:
        logger.error("webhook_secret_not_configured")
        return JSONResponse({"error": "Server configuration error"}, status_code=500)

    raw = await request.body()
    if not verify_signature(raw, secret, request.headers.get(SIGNATURE_HEADER)):
        logger.warning("webhook_signature_invalid")
        return JSONResponse({"error": "Unauthorized"}, status_code=401)

    try:
        body = json.loads(raw) if raw else None
    except ValueError:
        return JSONResponse({"error": "Invalid request body"}, status_code=400)

    user = None
    try:
        booking_request = resolve_booking_payload(body)
    except BookingError as e:
        return JSONResponse({"message": e.message}, status_code=e.status)
    if booking_request is not None and booking_request.contact_email:
        try:
            user = await toy.users.get_user_by_email(booking_request.contact_email)
        except StoreError as e:
            logger.error("webhook_user_lookup_failed", error=str(e))

    return await _create_booking(toy, body, user)


@router.get("/cars")
async def browse_cars(request: Request):
    toy = _toyotron(request)
    try:
        criteria = SearchCriteria.model_validate(dict(request.query_params))
    except ValidationError as e:
        return JSONResponse(
            {"error": INVALID_PARAMETERS, "details": format_validation_errors(e), "items": []},
            status_code=400,
        )
    result = await search_trims(toy.vehicles, criteria)
    return result.model_dump()


def create_app(toy: ToyotronApp) -> FastAPI:
    """FastAPI app bound to ``toy``; the lifespan starts and stops it."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await toy.start()
        try:
            yield
        finally:
            await toy.stop()

    app = FastAPI(title="Toyotron", description="Toyota shopping assistant API", lifespan=lifespan)
    app.state.toyotron = toy

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        bind_request_context(request_id=request_id, path=request.url.path)
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    @app.get("/health")
    async def health() -> dict[str, Any]:
        return {"status": "ok", "chat": toy.agent is not None, "tools": toy.tool_registry.names()}

    app.include_router(router)
    return app
