from typing import Literal, Optional

from app.schemas.appointment import AppointmentSummary
from app.schemas.base import CamelModel

class CancellationRequest(CamelModel):
    token: Optional[str] = None
    reason: Optional[str] = None
    action: Literal["validate", "cancel"] = "cancel"

class CancellationResponse(CamelModel):
    success: bool
    message: str
    is_late_cancellation: bool
    appointment: AppointmentSummary

class TokenValidationResponse(CamelModel):
    is_expired: bool
    is_used: bool
    is_cancelled: bool
    is_late_cancellation: bool
    appointment: AppointmentSummary
