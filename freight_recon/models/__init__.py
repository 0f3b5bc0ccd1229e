from freight_recon.models.file import File
from freight_recon.models.purchase_order import PurchaseOrder
from freight_recon.models.bill_of_lading import BillOfLading
from freight_recon.models.invoice import Invoice
from freight_recon.models.matching_result import MatchingResult

__all__ = ["File", "PurchaseOrder", "BillOfLading", "Invoice", "MatchingResult"]
