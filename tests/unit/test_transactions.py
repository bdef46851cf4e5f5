import re

import pytest

from powernaija.core.errors import BadRequestError, NotFoundError
from powernaija.models.transaction import TransactionStatus, TransactionType
from powernaija.services.transactions import TransactionJournal


def test_reference_format():
    reference = TransactionJournal.generate_reference("TXN")
    assert re.fullmatch(r"TXN-\d{13}-[0-9a-z]{9}", reference)


def test_references_are_unique():
    references = {TransactionJournal.generate_reference("CARBON") for _ in range(200)}
    assert len(references) == 200


class TestTransactionJournal:
    def test_record_defaults_to_pending(self, db, customer):
        transaction = TransactionJournal(db).record(
            user_id=customer.id, type=TransactionType.PURCHASE, amount=800, quantity=10
        )
        db.commit()

        assert transaction.status == TransactionStatus.PENDING
        assert transaction.reference.startswith("TXN-")
        assert transaction.transaction_metadata == {}

    def test_pending_to_success(self, db, customer):
        journal = TransactionJournal(db)
        transaction = journal.record(
            user_id=customer.id, type=TransactionType.PURCHASE, amount=800
        )
        journal.transition(transaction, TransactionStatus.SUCCESS)
        assert transaction.status == TransactionStatus.SUCCESS

    @pytest.mark.parametrize("settled", [TransactionStatus.SUCCESS, TransactionStatus.FAILED])
    def test_settled_cannot_settle_again(self, db, customer, settled):
        journal = TransactionJournal(db)
        transaction = journal.record(
            user_id=customer.id, type=TransactionType.PURCHASE, amount=800, status=settled
        )

        with pytest.raises(BadRequestError, match="already processed"):
            journal.transition(transaction, TransactionStatus.SUCCESS)

    def test_success_can_be_refunded(self, db, customer):
        journal = TransactionJournal(db)
        transaction = journal.record(
            user_id=customer.id,
            type=TransactionType.PURCHASE,
            amount=800,
            status=TransactionStatus.SUCCESS,
        )
        journal.transition(transaction, TransactionStatus.REFUNDED)
        assert transaction.status == TransactionStatus.REFUNDED

    def test_lookup(self, db, customer):
        journal = TransactionJournal(db)
        transaction = journal.record(
            user_id=customer.id, type=TransactionType.PURCHASE, amount=800
        )
        db.commit()

        assert journal.get(transaction.id).id == transaction.id
        assert journal.get_by_reference(transaction.reference).id == transaction.id
        assert journal.get_by_reference("TXN-missing") is None
        with pytest.raises(NotFoundError):
            journal.get("missing")

    def test_list_for_user_paginates(self, db, customer, admin):
        journal = TransactionJournal(db)
        for _ in range(3):
            journal.record(user_id=customer.id, type=TransactionType.PURCHASE, amount=100)
        journal.record(user_id=admin.id, type=TransactionType.PURCHASE, amount=100)
        db.commit()

        items, total = journal.list_for_user(customer.id, page=1, limit=2)
        assert total == 3
        assert len(items) == 2
        assert all(item.user_id == customer.id for item in items)
