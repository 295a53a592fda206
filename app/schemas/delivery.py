from pydantic import BaseModel
from typing import Optional

class DeliveryResult(BaseModel):
    """Outcome of a single provider send. Failures are values, never exceptions."""
    success: bool
    error: Optional[str] = None
    external_id: Optional[str] = None
