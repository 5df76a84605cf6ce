"""
Integration tests for invoices, Stripe payments and the Stripe webhook.

Stripe is never contacted: PaymentIntent creation and webhook signature
verification are patched.
"""

from unittest.mock import patch

import pytest
import stripe

from models import Invoice, Payment
from tests.conftest import auth_headers, create_patient, create_user


def _invoice_body(patient, **overrides):
    body = {
        "patientId": patient.id,
        "items": [
            {"description": "Consultation", "quantity": 1, "unitPrice": 80},
            {"description": "Blood test", "quantity": 2, "unitPrice": 15.5},
        ],
        "tax": 8.9,
        "dueDate": "2024-02-01",
    }
    body.update(overrides)
    return body


@pytest.fixture
def invoice(client, receptionist_headers, patient):
    response = client.post("/api/invoices", headers=receptionist_headers, json=_invoice_body(patient))
    assert response.status_code == 201
    return response.json()


@pytest.fixture
def mock_intent_create():
    with patch("services.payment_service.stripe.PaymentIntent.create",
               return_value={"id": "pi_123", "client_secret": "secret_123"}) as mock:
        yield mock


def _stripe_event(event_type, data_object):
    return {"id": "evt_1", "type": event_type, "data": {"object": data_object}}


def _post_webhook(client, event):
    with patch("services.payment_service.stripe.Webhook.construct_event", return_value=event):
        return client.post("/api/webhooks/stripe", content=b"{}", headers={"Stripe-Signature": "t=1,v1=sig"})


class TestInvoices:

    def test_create_computes_totals_and_number(self, clinic, invoice):
        assert invoice["invoiceNumber"] == f"INV-{clinic.id:06d}-00001"
        assert invoice["subtotal"] == 111.0
        assert invoice["tax"] == 8.9
        assert invoice["total"] == 119.9
        assert invoice["status"] == "PENDING"
        assert invoice["dueDate"] == "2024-02-01"
        assert invoice["items"][1] == {"description": "Blood test", "quantity": 2, "unitPrice": 15.5, "serviceId": None}
        assert invoice["payments"] == []

    def test_numbers_are_sequential_per_clinic(self, client, db_session, clinic, other_clinic,
                                               receptionist_headers, patient, invoice):
        other_admin = create_user(db_session, other_clinic, "ADMIN", "admin@harbor.example.com")
        other_patient = create_patient(db_session, other_clinic, "sam@harbor.example.com", "Sam", "Sea")

        second = client.post("/api/invoices", headers=receptionist_headers, json=_invoice_body(patient)).json()
        elsewhere = client.post("/api/invoices", headers=auth_headers(other_admin),
                                json=_invoice_body(other_patient)).json()

        assert second["invoiceNumber"] == f"INV-{clinic.id:06d}-00002"
        assert elsewhere["invoiceNumber"] == f"INV-{other_clinic.id:06d}-00001"

    def test_requires_items(self, client, receptionist_headers, patient):
        response = client.post("/api/invoices", headers=receptionist_headers, json=_invoice_body(patient, items=[]))
        assert response.status_code == 400

    def test_rejects_zero_quantity(self, client, receptionist_headers, patient):
        response = client.post("/api/invoices", headers=receptionist_headers, json=_invoice_body(
            patient, items=[{"description": "X", "quantity": 0, "unitPrice": 10}],
        ))
        assert response.status_code == 400

    def test_unknown_service_reference(self, client, receptionist_headers, patient):
        response = client.post("/api/invoices", headers=receptionist_headers, json=_invoice_body(
            patient, items=[{"description": "X", "quantity": 1, "unitPrice": 10, "serviceId": 777}],
        ))

        assert response.status_code == 400
        assert response.json() == {"error": "Service not found"}

    def test_doctor_cannot_invoice(self, client, doctor_headers, patient):
        response = client.post("/api/invoices", headers=doctor_headers, json=_invoice_body(patient))
        assert response.status_code == 403

    def test_update_status_and_notes(self, client, receptionist_headers, invoice):
        response = client.patch(f"/api/invoices/{invoice['id']}", headers=receptionist_headers,
                                json={"status": "overdue", "notes": "Reminder sent"})

        assert response.status_code == 200
        assert response.json()["status"] == "OVERDUE"
        assert response.json()["notes"] == "Reminder sent"

    def test_patient_sees_only_own_invoices(self, client, db_session, clinic, receptionist_headers,
                                            patient_headers, invoice):
        someone = create_patient(db_session, clinic, "john@sunrise.example.com", "John", "Roe")
        theirs = client.post("/api/invoices", headers=receptionist_headers, json=_invoice_body(someone)).json()

        listed = client.get("/api/invoices", headers=patient_headers).json()

        assert [i["id"] for i in listed] == [invoice["id"]]
        assert client.get(f"/api/invoices/{invoice['id']}", headers=patient_headers).status_code == 200
        assert client.get(f"/api/invoices/{theirs['id']}", headers=patient_headers).status_code == 404


class TestPayments:

    def test_create_payment_intent(self, client, db_session, clinic, patient_headers, invoice, mock_intent_create):
        response = client.post("/api/payments", headers=patient_headers, json={"invoiceId": invoice["id"]})

        assert response.status_code == 200
        body = response.json()
        assert body["clientSecret"] == "secret_123"
        assert body["payment"]["status"] == "PENDING"
        assert body["payment"]["amount"] == 119.9
        assert body["payment"]["stripePaymentIntentId"] == "pi_123"

        kwargs = mock_intent_create.call_args.kwargs
        assert kwargs["amount"] == 11990
        assert kwargs["metadata"] == {"invoiceId": str(invoice["id"]), "clinicId": str(clinic.id)}

    def test_paid_invoice_rejected(self, client, db_session, receptionist_headers, invoice, mock_intent_create):
        client.patch(f"/api/invoices/{invoice['id']}", headers=receptionist_headers, json={"status": "PAID"})

        response = client.post("/api/payments", headers=receptionist_headers, json={"invoiceId": invoice["id"]})

        assert response.status_code == 400
        mock_intent_create.assert_not_called()

    def test_unknown_invoice(self, client, receptionist_headers, mock_intent_create):
        response = client.post("/api/payments", headers=receptionist_headers, json={"invoiceId": 4040})
        assert response.status_code == 404

    def test_stripe_failure_is_502(self, client, db_session, receptionist_headers, invoice):
        with patch("services.payment_service.stripe.PaymentIntent.create",
                   side_effect=stripe.APIConnectionError("network down")):
            response = client.post("/api/payments", headers=receptionist_headers, json={"invoiceId": invoice["id"]})

        assert response.status_code == 502
        assert response.json() == {"error": "Payment provider error"}
        assert db_session.query(Payment).count() == 0

    def test_confirm_marks_invoice_paid(self, client, db_session, receptionist_headers, invoice, mock_intent_create):
        client.post("/api/payments", headers=receptionist_headers, json={"invoiceId": invoice["id"]})

        response = client.post("/api/payments/confirm", headers=receptionist_headers,
                               json={"paymentIntentId": "pi_123"})

        assert response.status_code == 200
        assert response.json()["status"] == "COMPLETED"
        assert response.json()["paidAt"] is not None
        fetched = client.get(f"/api/invoices/{invoice['id']}", headers=receptionist_headers).json()
        assert fetched["status"] == "PAID"
        assert [p["status"] for p in fetched["payments"]] == ["COMPLETED"]

    def test_confirm_unknown_intent(self, client, receptionist_headers):
        response = client.post("/api/payments/confirm", headers=receptionist_headers,
                               json={"paymentIntentId": "pi_missing"})
        assert response.status_code == 404


class TestStripeWebhook:

    @pytest.fixture
    def pending_payment(self, client, receptionist_headers, invoice, mock_intent_create):
        client.post("/api/payments", headers=receptionist_headers, json={"invoiceId": invoice["id"]})

    def test_succeeded_marks_invoice_paid(self, client, db_session, invoice, pending_payment):
        response = _post_webhook(client, _stripe_event("payment_intent.succeeded", {"id": "pi_123"}))

        assert response.status_code == 200
        assert response.text == "ok"
        db_session.expire_all()
        payment = db_session.query(Payment).one()
        assert payment.status == "COMPLETED"
        assert payment.paid_at is not None
        assert db_session.get(Invoice, invoice["id"]).status == "PAID"

    def test_partial_payment(self, client, db_session, invoice, pending_payment):
        payment = db_session.query(Payment).one()
        payment.amount = 50
        db_session.commit()

        _post_webhook(client, _stripe_event("payment_intent.succeeded", {"id": "pi_123"}))

        db_session.expire_all()
        assert db_session.get(Invoice, invoice["id"]).status == "PARTIALLY_PAID"

    def test_refund_marks_payment_refunded(self, client, db_session, pending_payment):
        response = _post_webhook(client, _stripe_event("charge.refunded", {"id": "ch_1", "payment_intent": "pi_123"}))

        assert response.status_code == 200
        db_session.expire_all()
        assert db_session.query(Payment).one().status == "REFUNDED"

    def test_unknown_intent_is_acknowledged(self, client, db_session, pending_payment):
        response = _post_webhook(client, _stripe_event("payment_intent.succeeded", {"id": "pi_other"}))

        assert response.status_code == 200
        db_session.expire_all()
        assert db_session.query(Payment).one().status == "PENDING"

    def test_other_event_types_ignored(self, client):
        response = _post_webhook(client, _stripe_event("customer.created", {"id": "cus_1"}))
        assert response.status_code == 200

    def test_bad_signature(self, client):
        with patch("services.payment_service.stripe.Webhook.construct_event",
                   side_effect=stripe.SignatureVerificationError("bad", "sig")):
            response = client.post("/api/webhooks/stripe", content=b"{}", headers={"Stripe-Signature": "t=1,v1=bad"})

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid signature"}

    def test_missing_signature_header(self, client):
        response = client.post("/api/webhooks/stripe", content=b"{}")
        assert response.status_code == 400
