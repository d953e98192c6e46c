from .store import Base, Store
from .user import User
from .closing import Closing, OperationalExit
from .receivable import Receivable
from .received_payment import ReceivedPayment

__all__ = ["Base", "Store", "User", "Closing", "OperationalExit", "Receivable", "ReceivedPayment"]
