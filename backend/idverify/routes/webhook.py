"""
Webhook Route — Provider event intake.

The body is read as raw bytes; signatures are computed over the exact payload.
"""
from fastapi import APIRouter, Depends, HTTPException, Request
from starlette.concurrency import run_in_threadpool

from idverify.dependencies import get_dispatcher, get_verifier
from idverify.errors import SignatureVerificationError, MalformedEventError
from idverify.schemas.schemas import WebhookAck
from idverify.services.event_dispatcher import EventDispatcher
from idverify.services.webhook_verifier import WebhookVerifier

router = APIRouter(tags=["Webhook"])


@router.post("/webhook", response_model=WebhookAck, response_model_exclude_none=True)
async def receive_webhook(
    request: Request,
    dispatcher: EventDispatcher = Depends(get_dispatcher),
    verifier: WebhookVerifier = Depends(get_verifier),
):
    """Acknowledge a provider event. Only signature and payload failures are rejected."""
    payload = await request.body()
    signature = request.headers.get("stripe-signature")
    ip_address = request.client.host if request.client else None

    try:
        # Store work blocks on the SQLite writer lock; keep it off the event loop
        result = await run_in_threadpool(dispatcher.ingest, verifier, payload, signature, ip_address)
    except SignatureVerificationError as exc:
        raise HTTPException(status_code=400, detail=f"Webhook Error: {exc}")
    except MalformedEventError as exc:
        raise HTTPException(status_code=400, detail=f"Webhook Error: {exc}")

    return WebhookAck(received=True, status=result.outcome)
