# Overview: Capability policy package.
# is_allowed(role, action) is the single authorization check.

from .categories import CapabilityCategory
from .definitions import (
    CAPABILITY_DEFINITIONS,
    SALES_CAPABILITIES,
    CATALOG_CAPABILITIES,
    STAFF_CAPABILITIES,
    AUDIT_CAPABILITIES,
)
from .roles import ROLE_CAPABILITIES
from .helpers import (
    get_all_capability_codes,
    get_capabilities_by_category,
    get_capability_definition,
    validate_capability_code,
)


def is_allowed(role: str | None, action: str) -> bool:
    """Fail closed: unknown roles and unknown actions are denied."""
    if not validate_capability_code(action):
        return False
    return action in ROLE_CAPABILITIES.get(role or "", frozenset())


def capabilities_for(role: str | None) -> list[str]:
    return sorted(ROLE_CAPABILITIES.get(role or "", frozenset()))


__all__ = [
    "CapabilityCategory",
    "CAPABILITY_DEFINITIONS",
    "SALES_CAPABILITIES",
    "CATALOG_CAPABILITIES",
    "STAFF_CAPABILITIES",
    "AUDIT_CAPABILITIES",
    "ROLE_CAPABILITIES",
    "get_all_capability_codes",
    "get_capabilities_by_category",
    "get_capability_definition",
    "validate_capability_code",
    "is_allowed",
    "capabilities_for",
]
