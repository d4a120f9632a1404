"""
Gateway server.

WebSocket endpoint /stream-audio: authenticates the connection, feeds final
transcript fragments through the transcript gate and streams suggestions back
as JSON text frames. Also mounts the read API and /health.
"""
import asyncio
import json
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Set

from fastapi import FastAPI, WebSocket
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from logging_setup import Component, get_logger
from observability.events import Component as ObsComponent, EventEmitter
from sales_events.models import SalesEvent
from suggestion_pipeline.gate import TranscriptGate
from suggestion_pipeline.orchestrator import SuggestionSession, TranscriptEvent
from suggestion_pipeline.protocol import encode

from .api import router as read_router
from .auth import DEMO_IDENTITY, Identity, extract_token
from .services import Services, get_services
from .sessions import Connection, new_session_id, session_registry

app = FastAPI(title="SalesGenius Gateway")
app.include_router(read_router)

logger = get_logger(Component.GATEWAY)
emitter = EventEmitter(ObsComponent.GATEWAY)

POLICY_VIOLATION = 1008
PROTOCOL_VERSION = "1.0"

AUTH_FAILED_MESSAGE = "Authentication failed. Please login again."
PREMIUM_REQUIRED_MESSAGE = "Premium subscription required for SalesGenius"
AUTH_REQUIRED_MESSAGE = "Authentication required"


class TranscriptFrame(BaseModel):
    """`op: transcript` frame from the speech-to-text side."""
    model_config = ConfigDict(populate_by_name=True)

    text: str
    confidence: float = 0.0
    is_final: bool = Field(True, alias="isFinal")


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {
        "status": "ok",
        "service": "salesgenius-backend",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


async def _reject(websocket: WebSocket, message: str, reason: str) -> None:
    await websocket.send_text(encode({"type": "error", "message": message}))
    await websocket.close(code=POLICY_VIOLATION, reason=reason)


async def _authenticate(websocket: WebSocket, services: Services) -> Optional[Identity]:
    """Resolve the connection's identity, or reject the connection and return None."""
    token = extract_token(
        websocket.headers.get("authorization"),
        websocket.query_params.get("token"),
    )

    if not token:
        if not services.gateway_config.allow_demo:
            logger.warning("Connection without token rejected, demo mode disabled")
            await _reject(websocket, AUTH_REQUIRED_MESSAGE, "Authentication required")
            return None
        logger.info("No auth token provided, running in demo mode")
        return DEMO_IDENTITY

    identity = None
    if services.identity_provider is None:
        logger.warning("Token provided but no identity provider configured")
    else:
        identity = await services.identity_provider.authenticate(token)

    if identity is None:
        await _reject(websocket, AUTH_FAILED_MESSAGE, "Authentication failed")
        return None
    if not identity.is_premium:
        logger.info("User is not premium", user_id=identity.user_id)
        await _reject(websocket, PREMIUM_REQUIRED_MESSAGE, "Premium required")
        return None
    return identity


def _open_connection(websocket: WebSocket, identity: Identity, services: Services) -> Connection:
    session_id = new_session_id(identity)
    started = time.monotonic()
    cycle_context: Dict[str, Any] = {"transcript": "", "confidence": 0.0}

    async def send(message: Dict[str, Any]) -> None:
        await websocket.send_text(encode(message))

    async def persist(category: str, text: str) -> None:
        if identity.is_demo:
            return
        await services.event_store.record(SalesEvent(
            user_id=identity.user_id,
            session_id=session_id,
            category=category,
            suggestion=text,
            transcript_context=cycle_context["transcript"],
            confidence=cycle_context["confidence"],
            metadata={
                "model": session.preset.model_id,
                "processing_time_ms": int((time.monotonic() - started) * 1000),
            },
        ))

    session = SuggestionSession.from_config(
        session_id,
        send,
        services.completion_client,
        services.pipeline_config,
        pacing=services.pacing,
        on_accepted=persist,
    )
    connection = Connection(
        session_id=session_id,
        identity=identity,
        session=session,
        gate=TranscriptGate(services.gateway_config.gate),
        cycle_context=cycle_context,
    )
    return session_registry.add(connection)


async def _run_cycle(connection: Connection, event: TranscriptEvent, context_chars: int) -> None:
    if not connection.session.busy:
        connection.cycle_context["transcript"] = event.text[-context_chars:]
        connection.cycle_context["confidence"] = event.confidence
    await connection.session.handle_transcript(event)


async def _record_session_end(connection: Connection, services: Services) -> None:
    duration = (datetime.now(timezone.utc) - connection.started_at).total_seconds()
    try:
        await services.event_store.record(SalesEvent(
            user_id=connection.user_id,
            session_id=connection.session_id,
            category="system",
            suggestion="Session ended",
            transcript_context=f"Duration: {duration}s",
            confidence=1.0,
            metadata={"event": "session_end", "duration_seconds": duration},
        ))
    except Exception as e:
        logger.error(
            "Error logging session end",
            session_id=connection.session_id,
            error=str(e),
            error_type=type(e).__name__,
        )


@app.websocket("/stream-audio")
async def stream_audio(websocket: WebSocket):
    services = get_services()
    await websocket.accept()
    logger.info("New WebSocket connection attempt")

    identity = await _authenticate(websocket, services)
    if identity is None:
        return

    connection = _open_connection(websocket, identity, services)
    session_id = connection.session_id
    emitter.session_opened(session_id, user_id=identity.user_id, demo=identity.is_demo)
    if not identity.is_demo:
        await websocket.send_text(encode({
            "type": "auth_success",
            "sessionId": session_id,
            "isPremium": identity.is_premium,
        }))

    tasks: Set[asyncio.Task] = set()
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            text = message.get("text")
            if text is None:
                # Binary audio goes to the speech-to-text side, not here
                continue
            try:
                frame = json.loads(text)
            except json.JSONDecodeError:
                logger.debug("Ignoring non-JSON text frame", session_id=session_id, size=len(text))
                continue
            if not isinstance(frame, dict):
                continue

            op = frame.get("op")
            if op == "hello":
                logger.debug("Hello from client", session_id=session_id)
                await websocket.send_text(encode({
                    "type": "hello_ack",
                    "version": PROTOCOL_VERSION,
                    "sessionId": session_id,
                }))
            elif op == "transcript":
                try:
                    fragment = TranscriptFrame.model_validate(frame)
                except ValidationError as e:
                    logger.warning("Invalid transcript frame", session_id=session_id, error=str(e))
                    continue
                event = connection.gate.offer(
                    fragment.text, fragment.confidence, is_final=fragment.is_final
                )
                if event is None:
                    continue
                task = asyncio.create_task(
                    _run_cycle(connection, event, services.gateway_config.context_chars)
                )
                tasks.add(task)
                task.add_done_callback(tasks.discard)
            elif op == "audio":
                # Header for the next binary audio frame
                continue
            else:
                logger.debug("Unknown op", session_id=session_id, op=op)
    finally:
        logger.info("WebSocket connection closed", session_id=session_id)
        pending = list(tasks)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        session_registry.close(session_id)
        if not identity.is_demo:
            await _record_session_end(connection, services)
