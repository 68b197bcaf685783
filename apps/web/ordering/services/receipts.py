"""Receipt retrieval - one-shot display of a just-placed order."""

from platter_schemas import ReceiptRecord

from apps.web.ordering.session import (
    RECEIPT_KEY,
    NotFound,
    SessionStore,
    read_record,
    write_record,
)


def load_receipt(store: SessionStore) -> ReceiptRecord | NotFound:
    """
    Read the last receipt.

    The record survives reads (a page refresh still shows it) and is only
    replaced by the next successful checkout. NotFound means the receipt
    screen was opened without a preceding purchase.
    """
    return read_record(store, RECEIPT_KEY, ReceiptRecord)


def write_receipt(store: SessionStore, receipt: ReceiptRecord) -> None:
    write_record(store, RECEIPT_KEY, receipt)
