from timebank.core.ledger.repository import LedgerRepository
from timebank.core.ledger.service import LedgerService, TransferService

__all__ = ["LedgerRepository", "LedgerService", "TransferService"]
