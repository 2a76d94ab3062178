from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.config import Settings
from app.dependencies import get_app_settings, get_gateway, get_store
from app.gateways.base import BaseGateway
from app.schemas.requests import ProcessPaymentRequest, VerifyCardRequest
from app.schemas.responses import RecordingResponse
from app.services.recorder import RecordingOutcome, record_payment, record_verification
from app.store.base import TransactionStore

router = APIRouter()


def _respond(outcome: RecordingOutcome, action: str) -> JSONResponse:
    """
    200 when the gateway approved, 422 when it declined, 502 when it failed.
    The stored record rides along in every case.
    """
    if outcome.gateway_error is not None:
        status_code = 502
        message = f"{action} failed: {outcome.gateway_error}"
    elif outcome.succeeded:
        status_code = 200
        message = f"{action} successful"
    else:
        status_code = 422
        message = f"{action} {outcome.record.status}"

    body = RecordingResponse(
        success=status_code == 200,
        message=message,
        transaction=outcome.record,
        recorded=outcome.recorded,
        gateway_response=outcome.raw_response,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


@router.post("/verify-card", response_model=RecordingResponse)
async def verify_card(
    request: VerifyCardRequest,
    store: TransactionStore = Depends(get_store),
    gateway: BaseGateway = Depends(get_gateway),
    settings: Settings = Depends(get_app_settings),
):
    """
    Zero-amount card verification.

    - Calls the gateway's verify capability
    - Records the attempt (approved, declined or failed) as a verification
    - Returns the normalized record
    """
    address = request.address.model_dump(exclude_none=True) if request.address else None
    outcome = await record_verification(
        gateway,
        store,
        request.payment_token,
        request.currency or settings.default_currency,
        address=address,
    )
    return _respond(outcome, "Card verification")


@router.post("/process-payment", response_model=RecordingResponse)
async def process_payment(
    request: ProcessPaymentRequest,
    store: TransactionStore = Depends(get_store),
    gateway: BaseGateway = Depends(get_gateway),
    settings: Settings = Depends(get_app_settings),
):
    """Charge a tokenized card and record the attempt."""
    outcome = await record_payment(
        gateway,
        store,
        request.payment_token,
        request.amount,
        request.currency or settings.default_currency,
        order_ref=request.order_reference,
    )
    return _respond(outcome, "Payment")
