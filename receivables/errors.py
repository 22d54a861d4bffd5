# receivables/errors.py
"""
Error taxonomy for the reconciliation engine.

Fatal per-file errors (UnsupportedFormat, ParseFailure) abort an upload before
anything is written. Duplicates are skip-and-count. An unresolved payer/buyer
name is not an error at all: it yields a relation row with no customer.
"""


class ReceivablesError(Exception):
    """Base class for every error raised by this package."""


class UnsupportedFormat(ReceivablesError):
    def __init__(self, filename: str):
        self.filename = filename
        super().__init__(
            f"Unsupported file type: {filename!r}. Only CSV, XLS and XLSX files are accepted."
        )


class ParseFailure(ReceivablesError):
    def __init__(self, filename: str, reason: str):
        self.filename = filename
        self.reason = reason
        super().__init__(f"Could not parse {filename!r}: {reason}")


class DuplicateRecord(ReceivablesError):
    """A document with the same dedup key is already stored."""


class DuplicateApprovalNumber(DuplicateRecord):
    def __init__(self, approval_number: str):
        self.approval_number = approval_number
        super().__init__(f"Invoice with approval number {approval_number!r} already exists")


class DuplicateDeposit(DuplicateRecord):
    def __init__(self, key: tuple):
        self.key = key
        super().__init__(f"Deposit {key!r} already exists")


class CustomerNotFound(ReceivablesError, LookupError):
    def __init__(self, customer_id: int):
        self.customer_id = customer_id
        super().__init__(f"Customer {customer_id} not found")


class DocumentNotFound(ReceivablesError, LookupError):
    def __init__(self, kind: str, document_id: int):
        self.kind = kind
        self.document_id = document_id
        super().__init__(f"{kind.capitalize()} {document_id} not found")


class LinkageError(ReceivablesError):
    """A manual link request that cannot be carried out as asked."""
