# stockroom/constants/transaction_type.py

from enum import Enum


class TransactionType(str, Enum):
    INBOUND = "INBOUND"
    OUTBOUND = "OUTBOUND"
