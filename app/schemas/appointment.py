from pydantic import BaseModel, ConfigDict
from typing import Optional, Any, Dict

class AppointmentSummary(BaseModel):
    id: str
    service_type: Optional[str] = None
    date: str
    start_time: str
    end_time: Optional[str] = None
    status: Optional[str] = None
    confirmation_status: Optional[str] = None
    customer_name: Optional[str] = None
    cancel_reason: Optional[str] = None
    cancelled_at: Optional[str] = None
    late_cancellation: Optional[bool] = None
    payment_required: Optional[bool] = None

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "AppointmentSummary":
        customer = row.get("customers") or {}
        fields = {name: row.get(name) for name in cls.model_fields if name != "customer_name"}
        return cls(**fields, customer_name=customer.get("full_name"))
