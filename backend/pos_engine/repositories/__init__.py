from .memory import (
    InMemoryAuditLog,
    InMemoryInventoryService,
    InMemoryPaymentRepository,
    InMemorySaleItemRepository,
    InMemorySequenceCounter,
    InMemorySessionProvider,
    InMemoryTransactionRepository,
    InMemoryUnitOfWork,
)
from .sql import (
    SqlAuditLog,
    SqlInventoryService,
    SqlPaymentRepository,
    SqlSaleItemRepository,
    SqlSequenceCounter,
    SqlSessionProvider,
    SqlTransactionRepository,
)

__all__ = [
    'InMemoryAuditLog', 'InMemoryInventoryService', 'InMemoryPaymentRepository',
    'InMemorySaleItemRepository', 'InMemorySequenceCounter', 'InMemorySessionProvider',
    'InMemoryTransactionRepository', 'InMemoryUnitOfWork',
    'SqlAuditLog', 'SqlInventoryService', 'SqlPaymentRepository',
    'SqlSaleItemRepository', 'SqlSequenceCounter', 'SqlSessionProvider',
    'SqlTransactionRepository',
]
