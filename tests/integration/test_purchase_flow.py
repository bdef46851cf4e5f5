import json

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from powernaija.api import deps
from powernaija.models.transaction import Transaction, TransactionStatus


class TestTokenPurchaseFlow:
    """Purchase initiation, redirect callback and webhook settlement."""

    def _purchase(self, client, headers, token, quantity=10, amount=800):
        response = client.post(
            "/api/tokens/purchase",
            headers=headers,
            json={"tokenId": token.id, "quantity": quantity, "amount": amount},
        )
        assert response.status_code == 200, response.text
        return response.json()["data"]

    def _webhook(self, client, gateway, event):
        payload = json.dumps(event).encode()
        return client.post(
            "/api/payments/webhook",
            content=payload,
            headers={"x-paystack-signature": gateway.sign(payload), "Content-Type": "application/json"},
        )

    def test_purchase_returns_payment_link(self, client: TestClient, auth_headers, grid_token):
        data = self._purchase(client, auth_headers, grid_token)

        assert data["reference"].startswith("TXN-")
        assert data["payment"]["reference"] == data["reference"]
        assert data["payment"]["authorizationUrl"].endswith(data["reference"])
        assert data["token"]["company"]["name"] == "Ikeja Electric"

        transaction = client.get(f"/api/transactions/{data['reference']}", headers=auth_headers).json()["data"]
        assert transaction["status"] == "PENDING"
        assert transaction["quantity"] == 10

    def test_wrong_amount(self, client: TestClient, auth_headers, grid_token):
        response = client.post(
            "/api/tokens/purchase",
            headers=auth_headers,
            json={"tokenId": grid_token.id, "quantity": 10, "amount": 100},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid purchase amount"

    def test_gateway_down(self, client: TestClient, db: Session, gateway, auth_headers, grid_token):
        gateway.fail_initialize = True
        response = client.post(
            "/api/tokens/purchase",
            headers=auth_headers,
            json={"tokenId": grid_token.id, "quantity": 10, "amount": 800},
        )
        assert response.status_code == 503
        assert response.json()["code"] == "PAYMENT_GATEWAY_ERROR"
        assert db.query(Transaction).one().status == TransactionStatus.FAILED

    def test_payments_not_configured(self, app, client: TestClient, auth_headers, grid_token):
        app.dependency_overrides[deps.get_payment_gateway] = lambda: None
        response = client.post(
            "/api/tokens/purchase",
            headers=auth_headers,
            json={"tokenId": grid_token.id, "quantity": 10, "amount": 800},
        )
        assert response.status_code == 503

    def test_callback_success_credits_wallet_once(self, client: TestClient, auth_headers, grid_token):
        reference = self._purchase(client, auth_headers, grid_token)["reference"]

        response = client.get(
            f"/api/payments/callback?reference={reference}", follow_redirects=False
        )
        assert response.status_code in (302, 307)
        assert response.headers["location"] == "http://frontend.test/dashboard?payment=success"

        # Replayed redirect does not credit again
        response = client.get(
            f"/api/payments/callback?reference={reference}", follow_redirects=False
        )
        assert response.headers["location"].endswith("payment=success")

        wallet = client.get("/api/wallet", headers=auth_headers).json()["data"]
        assert wallet["balance"] == 10
        assert wallet["totalEarned"] == 10

        notifications = client.get("/api/notifications", headers=auth_headers).json()["data"]
        assert [n["type"] for n in notifications["notifications"]] == ["payment_success"]

    def test_callback_declined(self, client: TestClient, gateway, auth_headers, grid_token):
        reference = self._purchase(client, auth_headers, grid_token)["reference"]
        gateway.status = "failed"

        response = client.get(
            f"/api/payments/callback?reference={reference}", follow_redirects=False
        )
        assert response.headers["location"].endswith("payment=failed")
        assert client.get("/api/wallet", headers=auth_headers).json()["data"]["balance"] == 0

    def test_callback_unknown_reference(self, client: TestClient):
        response = client.get(
            "/api/payments/callback?reference=TXN-unknown", follow_redirects=False
        )
        assert response.headers["location"].endswith("payment=error")

    def test_callback_requires_reference(self, client: TestClient):
        response = client.get("/api/payments/callback", follow_redirects=False)
        assert response.status_code == 400

    def test_webhook_settles_purchase(self, client: TestClient, gateway, auth_headers, grid_token):
        reference = self._purchase(client, auth_headers, grid_token)["reference"]
        event = {
            "event": "charge.success",
            "data": {"reference": reference, "amount": 80000, "currency": "NGN", "id": 77},
        }

        response = self._webhook(client, gateway, event)
        assert response.status_code == 200
        assert response.json()["data"] == {"reference": reference, "outcome": "success"}

        # Duplicate delivery
        response = self._webhook(client, gateway, event)
        assert response.json()["data"]["outcome"] == "success"
        assert client.get("/api/wallet", headers=auth_headers).json()["data"]["balance"] == 10

    def test_webhook_after_callback(self, client: TestClient, gateway, auth_headers, grid_token):
        reference = self._purchase(client, auth_headers, grid_token)["reference"]
        client.get(f"/api/payments/callback?reference={reference}", follow_redirects=False)

        event = {"event": "charge.success", "data": {"reference": reference, "amount": 80000}}
        assert self._webhook(client, gateway, event).json()["data"]["outcome"] == "success"
        assert client.get("/api/wallet", headers=auth_headers).json()["data"]["balance"] == 10

    def test_webhook_underpayment(self, client: TestClient, gateway, auth_headers, grid_token):
        reference = self._purchase(client, auth_headers, grid_token)["reference"]
        event = {"event": "charge.success", "data": {"reference": reference, "amount": 100}}

        assert self._webhook(client, gateway, event).json()["data"]["outcome"] == "failed"
        assert client.get("/api/wallet", headers=auth_headers).json()["data"]["balance"] == 0

    def test_webhook_bad_signature(self, client: TestClient):
        response = client.post(
            "/api/payments/webhook",
            content=b'{"event": "charge.success"}',
            headers={"x-paystack-signature": "forged"},
        )
        assert response.status_code == 401
        assert response.json()["error"] == "Invalid webhook signature"

    def test_webhook_ignores_other_events(self, client: TestClient, gateway):
        response = self._webhook(client, gateway, {"event": "transfer.success", "data": {}})
        assert response.status_code == 200
        assert response.json()["message"] == "Event ignored"

    def test_webhook_unknown_reference(self, client: TestClient, gateway):
        event = {"event": "charge.success", "data": {"reference": "TXN-ghost", "amount": 100}}
        assert self._webhook(client, gateway, event).status_code == 404

    def test_transaction_of_another_user_hidden(
        self, client: TestClient, auth_headers, admin_headers, grid_token
    ):
        reference = self._purchase(client, auth_headers, grid_token)["reference"]
        response = client.get(f"/api/transactions/{reference}", headers=admin_headers)
        assert response.status_code == 404
