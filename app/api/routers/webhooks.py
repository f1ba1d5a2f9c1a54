import logging

from fastapi import APIRouter, Depends, Request, status

from app.api.dependencies import get_use_cases
from app.api.schemas.webhooks import WebhookAck
from app.infrastructure.db.retry import retry_on_transient

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/webhooks/stripe", response_model=WebhookAck, status_code=status.HTTP_200_OK)
async def stripe_webhook(
    request: Request,
    use_cases=Depends(get_use_cases),
) -> WebhookAck:
    # Signature verification needs the exact bytes Stripe signed.
    raw_body = await request.body()
    signature = request.headers.get("Stripe-Signature")
    outcome = await retry_on_transient(
        lambda: use_cases["handle_webhook"].execute(raw_body=raw_body, signature=signature)
    )
    logger.debug("Stripe webhook handled", extra={"outcome": outcome.value})
    return WebhookAck()
