from pydantic import BaseModel, ConfigDict
from typing import List, Optional
from datetime import datetime

from app.schemas.base import CamelModel

class NotificationRequest(CamelModel):
    appointment_id: Optional[str] = None
    notification_type: str
    custom_message: Optional[str] = None
    phone_number: Optional[str] = None
    admin_notification: bool = False

class NotificationResponse(CamelModel):
    success: bool
    method: Optional[str] = None
    whatsapp_status: str
    sms_status: str
    error: Optional[str] = None

class ReminderResult(CamelModel):
    appointment_id: str
    customer_name: Optional[str] = None
    user_id: Optional[str] = None
    phone: Optional[str] = None
    notification_type: Optional[str] = None
    status: str
    error: Optional[str] = None

class ReminderRunResponse(CamelModel):
    message: str
    total_processed: int
    results: List[ReminderResult]

class InboundReplyResponse(CamelModel):
    success: bool
    appointment_id: str
    response_type: str
    confirmation_status: str
    reply: str

class DailySummaryRequest(CamelModel):
    date: Optional[str] = None

class DailySummaryResult(CamelModel):
    user_id: str
    status: str
    channel: Optional[str] = None
    completed_appointments: int
    cancelled_appointments: int
    total_revenue: float
    total_expenses: float
    net_profit: float
    error: Optional[str] = None

class DailySummaryResponse(CamelModel):
    message: str
    date: str
    results: List[DailySummaryResult]

class NotificationLogResponse(BaseModel):
    id: str
    user_id: str
    appointment_id: Optional[str] = None
    notification_type: str
    channel: str
    phone_number: Optional[str] = None
    message_content: str
    status: str
    error_message: Optional[str] = None
    external_message_id: Optional[str] = None
    sent_at: Optional[datetime] = None
    received_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
