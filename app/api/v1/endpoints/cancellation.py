from typing import Union

from fastapi import APIRouter, Depends

from app.api.deps import get_cancellation_service
from app.schemas.appointment import AppointmentSummary
from app.schemas.cancellation import CancellationRequest, CancellationResponse, TokenValidationResponse
from app.services.cancellation import CancellationService

router = APIRouter()

@router.post("", response_model=Union[CancellationResponse, TokenValidationResponse])
async def cancel_appointment(
    request: CancellationRequest,
    service: CancellationService = Depends(get_cancellation_service),
):
    """
    Cancels an appointment from the link sent to the customer.
    With action=validate the token is only inspected, nothing changes.
    """
    if request.action == "validate":
        preview = await service.validate(request.token)
        return TokenValidationResponse(
            is_expired=preview.is_expired,
            is_used=preview.is_used,
            is_cancelled=preview.is_cancelled,
            is_late_cancellation=preview.is_late_cancellation,
            appointment=AppointmentSummary.from_row(preview.appointment),
        )

    outcome = await service.consume(request.token, request.reason)
    message = "Appointment is already cancelled" if outcome.already_cancelled else "Appointment cancelled successfully"
    return CancellationResponse(
        success=True,
        message=message,
        is_late_cancellation=outcome.is_late_cancellation,
        appointment=AppointmentSummary.from_row(outcome.appointment),
    )
