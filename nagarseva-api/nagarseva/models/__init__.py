from nagarseva.models.account import Account
from nagarseva.models.category import Category
from nagarseva.models.chat_session import ChatSession
from nagarseva.models.ingested_update import IngestedUpdate
from nagarseva.models.ticket import Ticket

__all__ = [
    "Account",
    "Category",
    "ChatSession",
    "IngestedUpdate",
    "Ticket",
]
