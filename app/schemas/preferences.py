from pydantic import BaseModel, ConfigDict
from typing import Optional

class NotificationPreferences(BaseModel):
    """Channel preferences of a business owner. A missing row means both channels are on."""
    whatsapp_enabled: bool = True
    sms_fallback_enabled: bool = True
    daily_summary_enabled: bool = False

    model_config = ConfigDict(extra="ignore")

class NotificationPreferencesUpdate(BaseModel):
    whatsapp_enabled: Optional[bool] = None
    sms_fallback_enabled: Optional[bool] = None
    daily_summary_enabled: Optional[bool] = None
