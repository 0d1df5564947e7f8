from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict


class TicketTrackingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    ticket_number: str
    title: str
    description: str
    location: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    priority: str
    status: str
    complaint_status: Optional[str] = None
    tracking_stage: str
    source_channel: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TicketStageUpdate(BaseModel):
    status: Literal["accepted", "in_progress", "closed"]


class WebhookRegistrationResponse(BaseModel):
    ok: bool
    url: str
    description: Optional[str] = None
