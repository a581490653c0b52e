from .base import Base
from .engine import create_engine, create_sessionmaker, init_models
from .model import Account, PaymentTransaction, SubscriptionRecord
from .store import SqlPersistence

__all__ = [
    "Base",
    "Account",
    "PaymentTransaction",
    "SubscriptionRecord",
    "SqlPersistence",
    "create_engine",
    "create_sessionmaker",
    "init_models",
]
