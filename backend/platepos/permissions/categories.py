# Overview: Capability category constants for grouping related actions.


class CapabilityCategory:
    """Capability categories for organization and UI display."""
    SALES = "SALES"
    CATALOG = "CATALOG"
    STAFF = "STAFF"
    AUDIT = "AUDIT"
