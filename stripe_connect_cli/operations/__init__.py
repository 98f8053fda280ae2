"""Command operations built on the Stripe clients."""

from .accounts import AccountOperationError
from .card_import import CardImportError, CardImporter
from .customer_cleanup import CustomerDeleter, CustomerDeletionError
from .sandbox_accounts import SandboxAccountError, SandboxAccountGenerator

__all__ = [
    "AccountOperationError",
    "CardImportError",
    "CardImporter",
    "CustomerDeleter",
    "CustomerDeletionError",
    "SandboxAccountError",
    "SandboxAccountGenerator",
]
