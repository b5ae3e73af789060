# Overview: The role -> capability policy table.
#
# This table is the only place role decisions are made. Routes declare the
# capability they need; nothing compares role names inline.

from .helpers import get_all_capability_codes

ADMIN_CAPABILITIES = frozenset({
    "CREATE_SALE",
    "EDIT_SALE",
    "DELETE_SALE",
    "VIEW_OWN_SALES",
    "VIEW_PRODUCTS",
    "VIEW_ORDER_TAKERS",
    "UPDATE_ORDER_TAKER_BALANCE",
})

ROLE_CAPABILITIES = {
    "admin": ADMIN_CAPABILITIES,
    "superadmin": frozenset(get_all_capability_codes()),
}
