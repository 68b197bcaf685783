"""Tests for receipt retrieval."""

from decimal import Decimal

from apps.web.ordering.services.receipts import load_receipt, write_receipt
from apps.web.ordering.session import RECEIPT_KEY, InMemorySessionStore, NotFound
from apps.web.ordering.tests.factories import ReceiptRecordFactory, TransactionFactory


class TestLoadReceipt:
    """Tests for reading the last receipt."""

    def test_missing_receipt_is_not_found(self):
        """Test an empty session has no receipt."""
        assert load_receipt(InMemorySessionStore()) == NotFound(key=RECEIPT_KEY)

    def test_receipt_totals_round_trip(self):
        """Test the stored totals come back exactly."""
        store = InMemorySessionStore()
        receipt = ReceiptRecordFactory(
            transaction=TransactionFactory(price=Decimal("100000"))
        )

        write_receipt(store, receipt)
        loaded = load_receipt(store)

        assert loaded.subtotal == Decimal("100000")
        assert loaded.transaction.delivery_fee == Decimal("10000")
        assert loaded.transaction.service_fee == Decimal("1000")
        assert loaded.total == Decimal("111000")

    def test_reading_does_not_consume(self):
        """Test a receipt survives repeated reads."""
        store = InMemorySessionStore()
        write_receipt(store, ReceiptRecordFactory())

        first = load_receipt(store)
        second = load_receipt(store)

        assert first == second
        assert not isinstance(second, NotFound)

    def test_next_receipt_overwrites(self):
        """Test a later order replaces the stored receipt."""
        store = InMemorySessionStore()
        write_receipt(store, ReceiptRecordFactory())
        latest = ReceiptRecordFactory()

        write_receipt(store, latest)

        assert load_receipt(store).transaction.transaction_id == (
            latest.transaction.transaction_id
        )
