"""
Action codes and default role grants.

WHY: Centralized action definitions keep permission_service, the family
policies and the CLI consistent.

Each action is defined as: (code, name, description, category)
"""


class PermissionCategory:
    SALES = "SALES"
    PURCHASES = "PURCHASES"
    REPORTS = "REPORTS"


# =============================================================================
# ACTION CODES
# =============================================================================

SEE_INVOICES = "see_invoices"
CREATE_ELECTRONIC_INVOICE = "create_electronic_invoice"
CREATE_POS_AND_REMISION = "create_pos_and_remision"
CANCEL_POS_AND_REMISION = "cancel_pos_and_remision"
SEE_PURCHASES = "see_purchases"
CREATE_PURCHASE = "create_purchase"
CANCEL_PURCHASE = "cancel_purchase"
MANAGE_PAYMENTS = "manage_payments"
SEE_STATS = "see_stats"


PERMISSION_DEFINITIONS = [
    (SEE_INVOICES, "See invoices", "List and view sale invoices and remisions", PermissionCategory.SALES),
    (CREATE_ELECTRONIC_INVOICE, "Create electronic invoice", "Issue sale invoices", PermissionCategory.SALES),
    (CREATE_POS_AND_REMISION, "Create POS and remision", "Issue sale remisions", PermissionCategory.SALES),
    (CANCEL_POS_AND_REMISION, "Cancel POS and remision", "Cancel sale invoices and remisions", PermissionCategory.SALES),
    (SEE_PURCHASES, "See purchases", "List and view purchase invoices and remisions", PermissionCategory.PURCHASES),
    (CREATE_PURCHASE, "Create purchases", "Register purchase invoices and remisions", PermissionCategory.PURCHASES),
    (CANCEL_PURCHASE, "Cancel purchases", "Cancel purchase invoices and remisions", PermissionCategory.PURCHASES),
    (MANAGE_PAYMENTS, "Manage payments", "Register and cancel payments against documents", PermissionCategory.SALES),
    (SEE_STATS, "See stats", "Accounts receivable/payable and stock reports", PermissionCategory.REPORTS),
]


# =============================================================================
# DEFAULT ROLES
# =============================================================================

DEFAULT_ROLE_PERMISSIONS = {
    "admin": [code for code, _, _, _ in PERMISSION_DEFINITIONS],
    "seller": [
        SEE_INVOICES,
        CREATE_ELECTRONIC_INVOICE,
        CREATE_POS_AND_REMISION,
        MANAGE_PAYMENTS,
    ],
    "buyer": [
        SEE_PURCHASES,
        CREATE_PURCHASE,
        MANAGE_PAYMENTS,
    ],
}


def get_permission_name(code: str) -> str:
    for perm_code, name, _, _ in PERMISSION_DEFINITIONS:
        if perm_code == code:
            return name
    return code
