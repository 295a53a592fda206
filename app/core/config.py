from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional

class Settings(BaseSettings):
    app_name: str = "Salon Appointment Notifications"
    api_v1_str: str = "/api/v1"
    cors_origins: List[str] = ["*"]

    # Meta / WhatsApp Cloud API configuration
    meta_verify_token: str = "default_verify_token"
    meta_access_token: Optional[str] = None # Can be overridden per business in user_whatsapp_settings
    meta_api_version: str = "v18.0"
    whatsapp_phone_number_id: Optional[str] = None

    # Twilio (SMS fallback)
    twilio_account_sid: Optional[str] = None
    twilio_auth_token: Optional[str] = None
    twilio_from_number: Optional[str] = None

    # Supabase configuration (service role key, the workflow runs server side)
    supabase_url: str = "your_supabase_url_here"
    supabase_key: str = "your_supabase_key_here"

    new_relic_license_key: Optional[str] = None

    # Links embedded in outbound messages
    public_app_url: str = "http://localhost:5173"

    # Business locale
    timezone: str = "Asia/Jerusalem"
    country_code: str = "972"

    # Business rules
    late_cancellation_hours: float = 6
    cancellation_token_ttl_hours: int = 24
    response_lookback_days: int = 3
    waiting_list_batch_size: int = 3
    waiting_list_horizon_days: int = 7
    reminder_window_hours: float = 25
    reminder_short_notice_hours: float = 3.5
    unmatched_owner_id: str = "00000000-0000-0000-0000-000000000000"

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore"
    )

settings = Settings()
