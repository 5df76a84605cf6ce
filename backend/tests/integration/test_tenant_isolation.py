"""
Integration tests for clinic isolation.

Two clinics share one database. Every request is answered from the caller's
clinic only; ids that belong to the other clinic behave as if missing.
"""

from datetime import date

import pytest

from core.tenant import TenantScope
from models import Appointment, Consultation, Invoice, Service
from tests.conftest import auth_headers, create_doctor, create_patient, create_user
from utils.datetime_utils import utc_now


@pytest.fixture
def harbor(db_session, other_clinic):
    """Records owned by the second clinic."""
    admin = create_user(db_session, other_clinic, "ADMIN", "admin@harbor.example.com", "Hal", "Harbor")
    doctor = create_doctor(db_session, other_clinic, "doc@harbor.example.com", "Hank", "Pym")
    patient = create_patient(db_session, other_clinic, "pat@harbor.example.com", "Pat", "Ocean")

    scope = TenantScope(db_session, other_clinic.id)
    service = scope.add(Service(name="Harbor Checkup", price=50, duration=20, category="OTHER", is_active=True))
    appointment = scope.add(Appointment(
        patient_id=patient.id, doctor_id=doctor.id, appointment_date=date(2024, 1, 10),
        start_time="09:00", end_time="09:30", status="SCHEDULED",
    ))
    db_session.flush()
    consultation = scope.add(Consultation(
        appointment_id=appointment.id, patient_id=patient.id, doctor_id=doctor.id,
        consultation_date=utc_now(), chief_complaint="Sea sickness", status="SCHEDULED",
    ))
    invoice = scope.add(Invoice(
        patient_id=patient.id, invoice_number=f"INV-{other_clinic.id:06d}-00001",
        items=[{"description": "Checkup", "quantity": 1, "unitPrice": 50.0, "serviceId": None}],
        subtotal=50, tax=0, total=50, status="PENDING",
    ))
    db_session.commit()
    return {
        "admin": admin, "doctor": doctor, "patient": patient, "service": service,
        "appointment": appointment, "consultation": consultation, "invoice": invoice,
    }


def test_lists_only_show_own_clinic(client, admin_headers, patient, harbor):
    for path in ("/api/patients", "/api/appointments", "/api/services", "/api/invoices", "/api/doctors"):
        response = client.get(path, headers=admin_headers)
        assert response.status_code == 200, path
        assert all(item.get("clinicId", None) in (None, patient.clinic_id) for item in response.json()), path

    patient_ids = [p["id"] for p in client.get("/api/patients", headers=admin_headers).json()]
    assert patient_ids == [patient.id]
    assert client.get("/api/appointments", headers=admin_headers).json() == []
    assert client.get("/api/consultations", headers=admin_headers).json()["data"] == []
    assert client.get("/api/doctors", headers=admin_headers).json() == []


@pytest.mark.parametrize("path", [
    "/api/patients/{patient}",
    "/api/appointments/{appointment}",
    "/api/consultations/{consultation}",
    "/api/services/{service}",
    "/api/invoices/{invoice}",
])
def test_foreign_ids_are_not_found(client, admin_headers, harbor, path):
    url = path.format(**{key: harbor[key].id for key in ("patient", "appointment", "consultation", "service", "invoice")})

    response = client.get(url, headers=admin_headers)

    assert response.status_code == 404


def test_cannot_book_with_foreign_patient_or_doctor(client, admin_headers, patient, doctor, harbor):
    foreign_patient = client.post("/api/appointments", headers=admin_headers, json={
        "patientId": harbor["patient"].id, "doctorId": doctor.id,
        "appointmentDate": "2024-01-11", "startTime": "09:00", "endTime": "09:30",
    })
    foreign_doctor = client.post("/api/appointments", headers=admin_headers, json={
        "patientId": patient.id, "doctorId": harbor["doctor"].id,
        "appointmentDate": "2024-01-11", "startTime": "09:00", "endTime": "09:30",
    })

    assert foreign_patient.status_code == 400
    assert foreign_doctor.status_code == 400


def test_cannot_modify_foreign_records(client, db_session, admin_headers, harbor):
    cancel = client.delete(f"/api/appointments/{harbor['appointment'].id}", headers=admin_headers)
    price = client.put(f"/api/services/{harbor['service'].id}", headers=admin_headers, json={"price": 1})
    remove = client.delete(f"/api/patients/{harbor['patient'].id}", headers=admin_headers)

    assert (cancel.status_code, price.status_code, remove.status_code) == (404, 404, 404)
    db_session.expire_all()
    assert db_session.get(Appointment, harbor["appointment"].id).status == "SCHEDULED"
    assert float(db_session.get(Service, harbor["service"].id).price) == 50.0


def test_foreign_staff_member_is_not_found(client, admin_headers, harbor):
    response = client.put(f"/api/staff/{harbor['admin'].id}", headers=admin_headers, json={"isActive": False})
    assert response.status_code == 404


def test_same_email_may_not_span_clinics(client, admin_headers, harbor):
    """Emails are globally unique, so login can resolve the clinic from the email alone."""
    response = client.post("/api/patients", headers=admin_headers, json={
        "firstName": "Pat", "lastName": "Ocean", "email": harbor["patient"].user.email,
    })
    assert response.status_code == 400


def test_other_clinic_sees_its_own_data(client, harbor):
    headers = auth_headers(harbor["admin"])

    appointments = client.get("/api/appointments", headers=headers).json()

    assert [a["id"] for a in appointments] == [harbor["appointment"].id]
