from .sales import SaleTransactionRecord, SaleItemRecord, SalePaymentRecord
from .registers import RegisterSession
from .documents import TransactionSequence, AuditEvent
from .inventory import StockLevel

__all__ = [
    'SaleTransactionRecord', 'SaleItemRecord', 'SalePaymentRecord',
    'RegisterSession',
    'TransactionSequence', 'AuditEvent',
    'StockLevel',
]
