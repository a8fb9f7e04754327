from .tenancy import Organization, Branch, DocumentSequence
from .auth import User, Role, UserRole, Permission, RolePermission, SessionToken
from .catalog import Product, StockValue, Client, Supplier
from .documents import (
    SaleInvoice, SaleInvoiceLine, SaleInvoicePayment,
    SaleRemision, SaleRemisionLine, SaleRemisionPayment,
    PurchaseInvoice, PurchaseInvoiceLine, PurchaseInvoicePayment,
    PurchaseRemision, PurchaseRemisionLine, PurchaseRemisionPayment,
)
from .audit import SecurityEvent, ErrorLog

__all__ = [
    'Organization', 'Branch', 'DocumentSequence',
    'User', 'Role', 'UserRole', 'Permission', 'RolePermission', 'SessionToken',
    'Product', 'StockValue', 'Client', 'Supplier',
    'SaleInvoice', 'SaleInvoiceLine', 'SaleInvoicePayment',
    'SaleRemision', 'SaleRemisionLine', 'SaleRemisionPayment',
    'PurchaseInvoice', 'PurchaseInvoiceLine', 'PurchaseInvoicePayment',
    'PurchaseRemision', 'PurchaseRemisionLine', 'PurchaseRemisionPayment',
    'SecurityEvent', 'ErrorLog',
]
