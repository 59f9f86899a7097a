from .branches import Branch
from .auth import User, SessionToken
from .catalog import Product, ProductVariant
from .inventory import Inventory
from .sales import Sale, SaleLine
from .shifts import Shift, CashTransaction
from .installments import InstallmentPlan, InstallmentPayment
from .transfers import Transfer, TransferLine
from .purchasing import Supplier, PurchaseOrder, PurchaseOrderLine
from .preorders import PreOrder
from .ledger import LedgerEvent, DocumentSequence

__all__ = [
    'Branch',
    'User', 'SessionToken',
    'Product', 'ProductVariant',
    'Inventory',
    'Sale', 'SaleLine',
    'Shift', 'CashTransaction',
    'InstallmentPlan', 'InstallmentPayment',
    'Transfer', 'TransferLine',
    'Supplier', 'PurchaseOrder', 'PurchaseOrderLine',
    'PreOrder',
    'LedgerEvent', 'DocumentSequence',
]
