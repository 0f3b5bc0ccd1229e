"""
Domain exceptions raised by the document store, linkers and matching pipeline.
"""


class FreightReconError(Exception):
    """Base class for all reconciliation errors"""


class DocumentNotFoundError(FreightReconError):
    def __init__(self, kind: str, identifier: str):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} {identifier} not found")


class DuplicateDocumentError(FreightReconError):
    """A business identifier (po_number, bol_number, invoice_number) already exists"""

    def __init__(self, kind: str, field: str, value: str):
        self.kind = kind
        self.field = field
        self.value = value
        super().__init__(f"{kind} with {field} {value} already exists")


class InvalidStatusTransitionError(FreightReconError):
    def __init__(self, kind: str, current: str, target: str):
        self.kind = kind
        self.current = current
        self.target = target
        super().__init__(f"Cannot move {kind} from '{current}' to '{target}'")


class OracleError(FreightReconError):
    """The comparison oracle could not produce a verdict"""


class OracleResponseError(OracleError):
    """The comparison oracle replied with output that does not fit the verdict schema"""

