# Overview: All capability definitions organized by category.
# Each capability is defined as: (code, name, description, category)

from .categories import CapabilityCategory


# -- SALES --

SALES_CAPABILITIES = [
    (
        "CREATE_SALE",
        "Create Sale",
        "Ring up a sale (debits stock)",
        CapabilityCategory.SALES,
    ),
    (
        "EDIT_SALE",
        "Edit Sale",
        "Replace the items and details of a sale",
        CapabilityCategory.SALES,
    ),
    (
        "DELETE_SALE",
        "Delete Sale",
        "Delete a sale and restore its stock",
        CapabilityCategory.SALES,
    ),
    (
        "VIEW_OWN_SALES",
        "View Own Sales",
        "List and open sales the user created",
        CapabilityCategory.SALES,
    ),
    (
        "VIEW_ALL_SALES",
        "View All Sales",
        "List and open sales created by anyone",
        CapabilityCategory.SALES,
    ),
    (
        "MANAGE_ALL_SALES",
        "Manage All Sales",
        "Edit or delete sales created by other users",
        CapabilityCategory.SALES,
    ),
    (
        "BULK_DELETE_SALES",
        "Bulk Delete Sales",
        "Delete every sale in a date range (restores stock)",
        CapabilityCategory.SALES,
    ),
]


# -- CATALOG --

CATALOG_CAPABILITIES = [
    (
        "VIEW_PRODUCTS",
        "View Products",
        "Browse products, prices and stock",
        CapabilityCategory.CATALOG,
    ),
    (
        "MANAGE_CATALOG",
        "Manage Catalog",
        "Remove products that no sale references",
        CapabilityCategory.CATALOG,
    ),
]


# -- STAFF --

STAFF_CAPABILITIES = [
    (
        "VIEW_ORDER_TAKERS",
        "View Order Takers",
        "List order takers and balances",
        CapabilityCategory.STAFF,
    ),
    (
        "UPDATE_ORDER_TAKER_BALANCE",
        "Update Order Taker Balance",
        "Change an order taker's balance only",
        CapabilityCategory.STAFF,
    ),
    (
        "MANAGE_ORDER_TAKERS",
        "Manage Order Takers",
        "Create, edit and delete order takers",
        CapabilityCategory.STAFF,
    ),
    (
        "MANAGE_USERS",
        "Manage Users",
        "Create, list and delete admin accounts",
        CapabilityCategory.STAFF,
    ),
]


# -- AUDIT --

AUDIT_CAPABILITIES = [
    (
        "VIEW_ACTIVITY",
        "View Activity",
        "Read the activity log",
        CapabilityCategory.AUDIT,
    ),
]


CAPABILITY_DEFINITIONS = (
    SALES_CAPABILITIES
    + CATALOG_CAPABILITIES
    + STAFF_CAPABILITIES
    + AUDIT_CAPABILITIES
)
