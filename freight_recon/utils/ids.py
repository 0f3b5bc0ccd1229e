import uuid

# Prefixes for opaque primary keys, one per table
ID_PREFIXES = {
    "file": "f",
    "purchase_order": "po",
    "bill_of_lading": "bol",
    "invoice": "inv",
    "matching_result": "m",
}


def generate_id(entity: str) -> str:
    """Return a new prefixed identifier such as ``po_3f2a...``"""
    return f"{ID_PREFIXES[entity]}_{uuid.uuid4().hex}"
