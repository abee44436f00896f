"""Ledger exceptions"""


class LedgerError(Exception):
    """Base class for every ledger failure"""
    pass


class LedgerValidationError(LedgerError):
    """Raised when a request is rejected before any mutation happens"""
    pass


class InsufficientFundsError(LedgerValidationError):
    """Raised when wallet has insufficient balance"""
    pass


class InsufficientHoldingError(LedgerValidationError):
    """Raised when the portfolio holds less of an asset than requested"""
    pass


class AssetNotFoundError(LedgerValidationError):
    """Raised when market data has no asset for the requested id"""
    pass


class InvalidAmountError(LedgerValidationError):
    """Raised when a quantity, price or credit amount is not positive"""
    pass


class WalletNotFoundError(LedgerError):
    """Raised when wallet is not found"""
    pass


class PersistenceError(LedgerError):
    """Raised when ledger state could not be written or read back"""
    pass


class DuplicateRequestError(LedgerValidationError):
    """Raised when an idempotency key is reused for a different operation"""
    pass
