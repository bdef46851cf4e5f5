import pytest
from sqlalchemy import update

from powernaija.core.errors import BadRequestError, NotFoundError, ServiceUnavailableError
from powernaija.models.notification import Notification, NotificationType
from powernaija.models.transaction import Transaction, TransactionStatus, TransactionType
from powernaija.services.notifications import NotificationService
from powernaija.services.payments import PaymentVerification
from powernaija.services.tokens import TokenService
from powernaija.services.wallet import WalletLedger


def _verification(reference, amount, status="success"):
    return PaymentVerification(
        reference=reference,
        status=status,
        amount=amount,
        currency="NGN",
        gateway_transaction_id="42",
    )


class TestCatalogue:
    def test_list_available_cheapest_first(self, db, settings, renewable_token, grid_token):
        tokens = TokenService(db, settings).list_available()
        assert [token.id for token in tokens] == [grid_token.id, renewable_token.id]

    def test_list_available_hides_unavailable_and_inactive(
        self, db, settings, renewable_token, grid_token, grid_company
    ):
        renewable_token.is_available = False
        grid_company.is_active = False
        db.commit()
        assert TokenService(db, settings).list_available() == []

    def test_list_available_by_company(self, db, settings, renewable_token, grid_token):
        tokens = TokenService(db, settings).list_available(renewable_token.company_id)
        assert [token.id for token in tokens] == [renewable_token.id]

    def test_create_token_requires_company(self, db, settings):
        with pytest.raises(NotFoundError, match="Company not found"):
            TokenService(db, settings).create_token(
                company_id="missing", type="RENEWABLE", price_per_unit=90
            )

    def test_get_token_missing(self, db, settings):
        with pytest.raises(NotFoundError, match="Token not found"):
            TokenService(db, settings).get_token("missing")


class TestPurchase:
    def test_purchase_opens_pending_transaction(self, db, settings, gateway, customer, grid_token):
        result = TokenService(db, settings, gateway).purchase(customer, grid_token.id, 10, 800)

        transaction = result.transaction
        assert transaction.status == TransactionStatus.PENDING
        assert transaction.type == TransactionType.PURCHASE
        assert transaction.quantity == 10
        assert transaction.company_id == grid_token.company_id
        assert transaction.reference.startswith("TXN-")
        assert transaction.transaction_metadata["tokenId"] == grid_token.id
        assert result.payment.reference == transaction.reference
        assert gateway.initialized[transaction.reference]["amount"] == 800
        assert WalletLedger(db).get_wallet(customer.id).balance == 0

    def test_amount_must_match_price(self, db, settings, gateway, customer, grid_token):
        with pytest.raises(BadRequestError, match="Invalid purchase amount"):
            TokenService(db, settings, gateway).purchase(customer, grid_token.id, 10, 750)
        assert db.query(Transaction).count() == 0

    def test_amount_within_tolerance(self, db, settings, gateway, customer, grid_token):
        result = TokenService(db, settings, gateway).purchase(customer, grid_token.id, 10, 800.005)
        assert result.transaction.amount == 800.005

    def test_unavailable_token(self, db, settings, gateway, customer, grid_token):
        grid_token.is_available = False
        db.commit()
        with pytest.raises(BadRequestError, match="not available"):
            TokenService(db, settings, gateway).purchase(customer, grid_token.id, 10, 800)

    def test_gateway_failure_fails_transaction(self, db, settings, gateway, customer, grid_token):
        gateway.fail_initialize = True

        with pytest.raises(ServiceUnavailableError) as exc_info:
            TokenService(db, settings, gateway).purchase(customer, grid_token.id, 10, 800)

        assert exc_info.value.code == "PAYMENT_GATEWAY_ERROR"
        transaction = db.query(Transaction).one()
        assert transaction.status == TransactionStatus.FAILED
        assert transaction.transaction_metadata["failureReason"] == "Gateway unavailable"

    def test_no_gateway_configured(self, db, settings, customer, grid_token):
        with pytest.raises(ServiceUnavailableError):
            TokenService(db, settings).purchase(customer, grid_token.id, 10, 800)


class TestSettlement:
    @pytest.fixture
    def pending(self, db, settings, gateway, customer, grid_token):
        return TokenService(db, settings, gateway).purchase(customer, grid_token.id, 10, 800).transaction

    def test_complete_credits_wallet(self, db, settings, gateway, customer, pending):
        TokenService(db, settings, gateway).complete_purchase(pending.id)

        wallet = WalletLedger(db).get_wallet(customer.id)
        assert pending.status == TransactionStatus.SUCCESS
        assert wallet.balance == 10
        assert wallet.total_earned == 10
        notification = db.query(Notification).one()
        assert notification.type == NotificationType.PAYMENT_SUCCESS
        assert notification.data["reference"] == pending.reference

    def test_double_complete_credits_once(self, db, settings, gateway, customer, pending):
        service = TokenService(db, settings, gateway)
        service.complete_purchase(pending.id)

        with pytest.raises(BadRequestError, match="already processed"):
            service.complete_purchase(pending.id)
        assert WalletLedger(db).get_wallet(customer.id).balance == 10

    def test_confirm_success_is_idempotent(self, db, settings, gateway, customer, pending):
        service = TokenService(db, settings, gateway)
        verification = _verification(pending.reference, 800)

        assert service.confirm_payment(verification) == "success"
        assert service.confirm_payment(verification) == "success"
        assert WalletLedger(db).get_wallet(customer.id).balance == 10

    def test_confirm_declined(self, db, settings, gateway, customer, pending):
        outcome = TokenService(db, settings, gateway).confirm_payment(
            _verification(pending.reference, 0, status="failed")
        )
        assert outcome == "failed"
        assert pending.status == TransactionStatus.FAILED
        assert db.query(Notification).one().type == NotificationType.PAYMENT_FAILED

    def test_confirm_pending_changes_nothing(self, db, settings, gateway, pending):
        outcome = TokenService(db, settings, gateway).confirm_payment(
            _verification(pending.reference, 0, status="pending")
        )
        assert outcome == "pending"
        assert pending.status == TransactionStatus.PENDING

    def test_underpayment_fails(self, db, settings, gateway, customer, pending):
        outcome = TokenService(db, settings, gateway).confirm_payment(
            _verification(pending.reference, 500)
        )
        assert outcome == "failed"
        assert WalletLedger(db).get_wallet(customer.id).balance == 0

    def test_failed_stays_failed(self, db, settings, gateway, customer, pending):
        service = TokenService(db, settings, gateway)
        service.fail_purchase(pending.id, reason="Payment declined")

        assert service.confirm_payment(_verification(pending.reference, 800)) == "failed"
        assert WalletLedger(db).get_wallet(customer.id).balance == 0

    def test_unknown_reference(self, db, settings, gateway):
        with pytest.raises(NotFoundError):
            TokenService(db, settings, gateway).confirm_payment(_verification("TXN-nope", 800))

    def test_failed_notification_undoes_completion(
        self, db, settings, gateway, customer, pending, monkeypatch
    ):
        def broken_create(self, *args, **kwargs):
            raise RuntimeError("notification store unavailable")

        monkeypatch.setattr(NotificationService, "create", broken_create)

        with pytest.raises(RuntimeError):
            TokenService(db, settings, gateway).complete_purchase(pending.id)

        db.refresh(pending)
        assert pending.status == TransactionStatus.PENDING
        wallet = WalletLedger(db).get_wallet(customer.id)
        assert wallet.balance == 0
        assert wallet.total_earned == 0

    def test_underpayment_after_concurrent_settlement(self, db, settings, gateway, customer, pending):
        # Another worker completes the purchase after this session has read it
        db.execute(
            update(Transaction)
            .where(Transaction.id == pending.id)
            .values(status=TransactionStatus.SUCCESS)
            .execution_options(synchronize_session=False)
        )
        db.commit()
        assert pending.status == TransactionStatus.PENDING

        outcome = TokenService(db, settings, gateway).confirm_payment(
            _verification(pending.reference, 500)
        )

        assert outcome == "success"
        assert pending.status == TransactionStatus.SUCCESS
        assert db.query(Notification).count() == 0

    def test_decline_after_concurrent_settlement(self, db, settings, gateway, pending):
        db.execute(
            update(Transaction)
            .where(Transaction.id == pending.id)
            .values(status=TransactionStatus.FAILED)
            .execution_options(synchronize_session=False)
        )
        db.commit()

        outcome = TokenService(db, settings, gateway).confirm_payment(
            _verification(pending.reference, 0, status="failed")
        )

        assert outcome == "failed"
        assert db.query(Notification).count() == 0
