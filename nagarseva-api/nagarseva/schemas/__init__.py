from nagarseva.schemas.telegram import TelegramUpdate, TelegramWebhookResponse
from nagarseva.schemas.ticket import TicketStageUpdate, TicketTrackingResponse, WebhookRegistrationResponse

__all__ = [
    "TelegramUpdate",
    "TelegramWebhookResponse",
    "TicketStageUpdate",
    "TicketTrackingResponse",
    "WebhookRegistrationResponse",
]
