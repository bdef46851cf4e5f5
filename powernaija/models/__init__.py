"""Database models."""

from .carbon_credit import CarbonCredit
from .chat import ChatMessage, ChatSession
from .company import Company
from .energy_token import EnergyToken, TokenType
from .notification import Notification, NotificationType
from .transaction import Transaction, TransactionStatus, TransactionType
from .usage_limit import UsageLimit
from .usage_log import UsageLog
from .user import User, UserRole
from .wallet import Wallet

__all__ = [
    "CarbonCredit",
    "ChatMessage",
    "ChatSession",
    "Company",
    "EnergyToken",
    "Notification",
    "NotificationType",
    "TokenType",
    "Transaction",
    "TransactionStatus",
    "TransactionType",
    "UsageLimit",
    "UsageLog",
    "User",
    "UserRole",
    "Wallet",
]
