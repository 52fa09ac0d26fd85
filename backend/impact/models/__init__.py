# backend/impact/models/__init__.py
from impact.db import Base

# import all model modules so tables get registered on Base.metadata
from .user import User, UserRole
from .mission import Mission, MissionStatus
from .application import Application, ApplicationStatus
from .transaction import Transaction, TransactionType, TransactionStatus


__all__ = [
    "Base",
    "User",
    "UserRole",
    "Mission",
    "MissionStatus",
    "Application",
    "ApplicationStatus",
    "Transaction",
    "TransactionType",
    "TransactionStatus",
]
