"""
API v1 routes.

Push-delivery endpoint for brokers that deliver messages over HTTP.
A 2xx response acknowledges the message; any other status leaves it
for the broker's redelivery and dead-letter policy.
"""

import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool

from src.api.dependencies import get_dispatcher
from src.api.models import DispatchResponse, ErrorResponse
from src.domain.dispatcher import CommandDispatcher
from src.domain.ports import DispatchOutcome

logger = logging.getLogger(__name__)

router = APIRouter(tags=["v1"])


@router.post(
    "/messages",
    response_model=DispatchResponse,
    responses={
        503: {"model": ErrorResponse, "description": "Message deferred for redelivery"},
    },
    summary="Deliver a registration message",
    description="Submit one raw registration message. "
    "200 acknowledges the message; 503 asks the broker to redeliver it.",
)
async def receive_message(
    request: Request,
    x_message_id: str | None = Header(default=None),
    x_delivery_count: int = Header(default=1),
    dispatcher: CommandDispatcher = Depends(get_dispatcher),
) -> DispatchResponse:
    """
    Dispatch one pushed message.

    - **body**: JSON `{"eventId", "userId", "action"}`
    - **X-Message-Id**: transport message id, recorded in the audit log
    - **X-Delivery-Count**: delivery attempt, for logging
    """
    body = await request.body()
    logger.info("Message received: id=%s delivery_count=%s", x_message_id, x_delivery_count)

    # Ledger and notification calls block; keep them off the event loop
    outcome = await run_in_threadpool(dispatcher.dispatch, body, x_message_id)

    if outcome is DispatchOutcome.DEFERRED:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Message deferred for redelivery",
        )
    return DispatchResponse(outcome=outcome, message_id=x_message_id)
