from hourbook.models.invoice import Invoice
from hourbook.models.invoice_item import InvoiceItem
from hourbook.models.project import Project
from hourbook.models.time_entry import TimeEntry

__all__ = [
    "Invoice",
    "InvoiceItem",
    "Project",
    "TimeEntry",
]
