"""
Delivery diagnostics.

Every response carries ``X-Response-Time-Ms`` and ``X-Query-Count`` (SQL
statements issued while handling it).  Responses to ``/events/`` deliveries
are also classified from their body: an ``EventReport`` is ``ok`` or
``degraded``, a critical-failure body is ``failed``.  The class goes into
``X-Event-Outcome`` and degraded or failed deliveries are logged, since the
trigger source itself only looks at the status code.
"""
import json
import logging
import time
from contextvars import ContextVar

from sqlalchemy import event
from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger(__name__)

EVENTS_PREFIX = "/events/"

query_count_var: ContextVar[int] = ContextVar("query_count", default=0)


def install_query_counter(engine) -> None:
    """Count statements on *engine* into ``query_count_var`` (once per engine)."""

    @event.listens_for(engine.sync_engine, "before_cursor_execute")
    def _count_query(conn, cursor, statement, parameters, context, executemany):
        query_count_var.set(query_count_var.get() + 1)


def classify_delivery(status_code: int, body: bytes) -> tuple[str | None, dict]:
    """
    Return ``(outcome, payload)`` for an event delivery response.

    *outcome* is ``"ok"``, ``"degraded"`` or ``"failed"``; ``None`` when the
    body is not an event report or a critical failure (validation errors,
    unknown routes).
    """
    try:
        payload = json.loads(body) if body else {}
    except ValueError:
        return None, {}
    if not isinstance(payload, dict) or "event" not in payload:
        return None, {}
    if status_code >= 500:
        return "failed", payload
    return ("degraded" if payload.get("degraded") else "ok"), payload


def _log_delivery(outcome: str, payload: dict, path: str, queries: int, elapsed_ms: float) -> None:
    name = payload["event"]
    if outcome == "failed":
        logger.error(
            "Delivery %s (%s) failed at %r, awaiting redelivery (%d queries, %.2f ms)",
            name, path, payload.get("step"), queries, elapsed_ms,
        )
    elif outcome == "degraded":
        failed = [o.get("step") for o in payload.get("outcomes", []) if not o.get("ok")]
        logger.warning(
            "Delivery %s (%s) degraded, advisory steps failed: %s (%d queries, %.2f ms)",
            name, path, ", ".join(failed), queries, elapsed_ms,
        )
    else:
        logger.info("Delivery %s (%s) ok (%d queries, %.2f ms)", name, path, queries, elapsed_ms)


class DeliveryMiddleware:
    """
    Pure ASGI (``BaseHTTPMiddleware`` would run the app in another context
    and lose ``query_count_var``).  Event delivery responses are small JSON
    documents, so they are held back until complete, classified, then sent
    with the extra header.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        query_count_var.set(0)
        start = time.perf_counter()
        path = scope.get("path", "")
        is_delivery = path.startswith(EVENTS_PREFIX)
        held: dict = {}
        chunks: list[bytes] = []

        def stamp(message: Message) -> MutableHeaders:
            headers = MutableHeaders(scope=message)
            headers.append("X-Response-Time-Ms", f"{(time.perf_counter() - start) * 1000:.2f}")
            headers.append("X-Query-Count", str(query_count_var.get()))
            return headers

        async def send_wrapper(message: Message) -> None:
            if not is_delivery:
                if message["type"] == "http.response.start":
                    stamp(message)
                await send(message)
                return

            if message["type"] == "http.response.start":
                held["start"] = message
                return
            if message["type"] != "http.response.body":
                await send(message)
                return
            chunks.append(message.get("body", b""))
            if message.get("more_body", False):
                return

            body = b"".join(chunks)
            start_message = held["start"]
            headers = stamp(start_message)
            outcome, payload = classify_delivery(start_message["status"], body)
            if outcome is not None:
                headers["X-Event-Outcome"] = outcome
                _log_delivery(
                    outcome, payload, path, query_count_var.get(), (time.perf_counter() - start) * 1000
                )
            await send(start_message)
            await send({"type": "http.response.body", "body": body, "more_body": False})

        await self.app(scope, receive, send_wrapper)
