"""
Lifecycle status tables for purchase orders, bills of lading and invoices.

Manual status changes are checked against ``ALLOWED_TRANSITIONS``. The
matching pipeline sets outcome statuses directly and does not go through
these checks.
"""
from freight_recon.errors import InvalidStatusTransitionError

PO_STATUSES = ("pending", "bol_received", "invoiced", "matched", "disputed")
BOL_STATUSES = ("pending", "delivered", "invoiced", "matched")
INVOICE_STATUSES = ("pending", "matched", "flagged", "approved", "disputed", "rejected")

STATUSES = {
    "purchase_order": PO_STATUSES,
    "bill_of_lading": BOL_STATUSES,
    "invoice": INVOICE_STATUSES,
}

ALLOWED_TRANSITIONS = {
    "purchase_order": {
        "pending": {"bol_received", "invoiced", "matched", "disputed"},
        "bol_received": {"invoiced", "matched", "disputed"},
        "invoiced": {"matched", "disputed"},
        "matched": set(),
        "disputed": set(),
    },
    "bill_of_lading": {
        "pending": {"delivered", "invoiced", "matched"},
        "delivered": {"invoiced", "matched"},
        "invoiced": {"matched"},
        "matched": set(),
    },
    "invoice": {
        "pending": {"matched", "flagged"},
        "matched": {"approved", "disputed", "rejected"},
        "flagged": {"approved", "disputed", "rejected"},
        "approved": set(),
        "disputed": set(),
        "rejected": set(),
    },
}

# Candidate pools for fuzzy linking: documents not yet resolved
UNMATCHED_PO_STATUSES = ("pending", "bol_received")
UNMATCHED_BOL_STATUSES = ("pending",)

# Outcome statuses applied by the status coordinator
MATCHED_OUTCOME = {
    "purchase_order": "matched",
    "bill_of_lading": "matched",
    "invoice": "matched",
}
DISPUTED_OUTCOME = {
    "purchase_order": "disputed",
    "bill_of_lading": "invoiced",
    "invoice": "flagged",
}


def check_transition(kind: str, current: str, target: str) -> None:
    """Raise InvalidStatusTransitionError unless ``current -> target`` is allowed for ``kind``"""
    if target not in STATUSES[kind]:
        raise InvalidStatusTransitionError(kind, current, target)
    if current == target:
        return
    if target not in ALLOWED_TRANSITIONS[kind].get(current, set()):
        raise InvalidStatusTransitionError(kind, current, target)
