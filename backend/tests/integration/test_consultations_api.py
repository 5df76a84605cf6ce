"""
Integration tests for consultations and prescriptions.

PDF rendering and object storage are mocked; the prescription endpoints only
depend on their outcome.
"""

from datetime import date
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from core.tenant import TenantScope
from models import Appointment, Consultation, Prescription
from tests.conftest import create_doctor, create_patient


@pytest.fixture
def appointment(db_session, clinic, patient, doctor):
    appointment = Appointment(
        patient_id=patient.id,
        doctor_id=doctor.id,
        appointment_date=date(2024, 1, 10),
        start_time="09:00",
        end_time="09:30",
        status="SCHEDULED",
    )
    TenantScope(db_session, clinic.id).add(appointment)
    db_session.commit()
    return appointment


@pytest.fixture
def consultation(client, doctor_headers, appointment, patient, doctor):
    response = client.post("/api/consultations", headers=doctor_headers, json={
        "appointmentId": appointment.id,
        "patientId": patient.id,
        "doctorId": doctor.id,
        "chiefComplaint": "Persistent cough",
    })
    assert response.status_code == 201
    return response.json()["data"]


@pytest.fixture
def mock_pdf_pipeline():
    """Stub PDF rendering and object storage used by prescription creation."""
    pdf_service = MagicMock()
    pdf_service.return_value.generate_prescription_pdf.return_value = b"%PDF-1.7 test"
    with patch("services.prescription_service.PDFService", pdf_service), \
         patch("services.prescription_service.upload_bytes", new=AsyncMock(return_value="key")) as upload, \
         patch("services.prescription_service.get_download_url",
               new=AsyncMock(return_value="https://files.example.com/signed.pdf")), \
         patch("services.prescription_service.delete_file", new=AsyncMock(return_value=True)) as delete:
        yield {"pdf": pdf_service, "upload": upload, "delete": delete}


class TestConsultations:

    def test_create_uses_envelope_and_lowercase_status(self, client, doctor_headers, appointment, patient, doctor):
        response = client.post("/api/consultations", headers=doctor_headers, json={
            "appointmentId": appointment.id,
            "patientId": patient.id,
            "doctorId": doctor.id,
            "chiefComplaint": "Headache",
            "diagnosis": "Tension headache",
            "vitalSigns": {"bloodPressure": "120/80", "pulse": 72},
            "status": "COMPLETED",
        })

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Consultation created successfully"
        data = body["data"]
        assert data["status"] == "completed"
        assert data["vitalSigns"] == {"bloodPressure": "120/80", "pulse": 72}
        assert data["patientName"] == "Jane Doe"
        assert data["doctorName"] == "Gregory House"
        assert data["consultationDate"].startswith("2024-01-10T09:00")

    def test_doctor_may_be_referenced_by_user_id(self, client, db_session, clinic, doctor_headers,
                                                 appointment, patient):
        colleague = create_doctor(db_session, clinic, "cuddy@sunrise.example.com", "Lisa", "Cuddy")
        assert colleague.user_id != colleague.id

        response = client.post("/api/consultations", headers=doctor_headers, json={
            "appointmentId": appointment.id,
            "patientId": patient.id,
            "doctorId": colleague.user_id,
            "chiefComplaint": "Checkup",
        })

        assert response.status_code == 201
        assert response.json()["data"]["doctorId"] == colleague.id

    def test_one_consultation_per_appointment(self, client, doctor_headers, consultation, appointment, patient, doctor):
        response = client.post("/api/consultations", headers=doctor_headers, json={
            "appointmentId": appointment.id,
            "patientId": patient.id,
            "doctorId": doctor.id,
            "chiefComplaint": "Again",
        })

        assert response.status_code == 400
        assert response.json() == {"error": "Consultation already exists for this appointment"}

    def test_unknown_appointment(self, client, doctor_headers, patient, doctor):
        response = client.post("/api/consultations", headers=doctor_headers, json={
            "appointmentId": 999, "patientId": patient.id, "doctorId": doctor.id, "chiefComplaint": "x",
        })
        assert response.status_code == 404

    def test_blank_chief_complaint(self, client, doctor_headers, appointment, patient, doctor):
        response = client.post("/api/consultations", headers=doctor_headers, json={
            "appointmentId": appointment.id, "patientId": patient.id, "doctorId": doctor.id, "chiefComplaint": "  ",
        })
        assert response.status_code == 400

    def test_receptionist_cannot_record(self, client, receptionist_headers, appointment, patient, doctor):
        response = client.post("/api/consultations", headers=receptionist_headers, json={
            "appointmentId": appointment.id, "patientId": patient.id, "doctorId": doctor.id, "chiefComplaint": "x",
        })
        assert response.status_code == 403

    def test_list_filters_by_status(self, client, doctor_headers, consultation):
        scheduled = client.get("/api/consultations?status=scheduled", headers=doctor_headers).json()
        completed = client.get("/api/consultations?status=completed", headers=doctor_headers).json()

        assert scheduled["success"] is True
        assert [c["id"] for c in scheduled["data"]] == [consultation["id"]]
        assert completed["data"] == []

    def test_update(self, client, doctor_headers, consultation):
        response = client.patch(f"/api/consultations/{consultation['id']}", headers=doctor_headers,
                                json={"diagnosis": "Bronchitis", "status": "completed"})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["diagnosis"] == "Bronchitis"
        assert data["status"] == "completed"

    def test_get_includes_prescriptions(self, client, doctor_headers, consultation, mock_pdf_pipeline, patient):
        client.post("/api/prescriptions", headers=doctor_headers, json={
            "consultationId": consultation["id"],
            "patientId": patient.id,
            "medications": [{"name": "Amoxicillin", "dosage": "500mg"}],
        })

        response = client.get(f"/api/consultations/{consultation['id']}", headers=doctor_headers)

        assert response.status_code == 200
        prescriptions = response.json()["data"]["prescriptions"]
        assert len(prescriptions) == 1
        assert prescriptions[0]["medications"][0]["name"] == "Amoxicillin"

    def test_delete_cascades_to_prescriptions(self, client, db_session, admin_headers, doctor_headers,
                                              consultation, mock_pdf_pipeline, patient):
        client.post("/api/prescriptions", headers=doctor_headers, json={
            "consultationId": consultation["id"],
            "patientId": patient.id,
            "medications": [{"name": "Ibuprofen"}],
        })

        response = client.delete(f"/api/consultations/{consultation['id']}", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["success"] is True
        db_session.expire_all()
        assert db_session.query(Consultation).count() == 0
        assert db_session.query(Prescription).count() == 0

    def test_only_admin_deletes(self, client, doctor_headers, consultation):
        response = client.delete(f"/api/consultations/{consultation['id']}", headers=doctor_headers)
        assert response.status_code == 403


class TestPrescriptions:

    def test_create_renders_and_stores_pdf(self, client, db_session, doctor_headers, consultation,
                                           mock_pdf_pipeline, patient, doctor):
        response = client.post("/api/prescriptions", headers=doctor_headers, json={
            "consultationId": consultation["id"],
            "patientId": patient.id,
            "medications": [
                {"name": "Amoxicillin", "dosage": "500mg", "frequency": "3x daily", "duration": "7 days"},
            ],
            "instructions": "Take with food",
        })

        assert response.status_code == 201
        body = response.json()
        assert body["doctorId"] == doctor.id
        assert body["pdfUrl"] == "https://files.example.com/signed.pdf"
        assert body["patientName"] == "Jane Doe"

        snapshot = mock_pdf_pipeline["pdf"].return_value.generate_prescription_pdf.call_args.args[0]
        assert snapshot["clinic"]["name"] == "Sunrise Clinic"
        assert snapshot["medications"][0]["name"] == "Amoxicillin"

        key, data, content_type = mock_pdf_pipeline["upload"].await_args.args
        assert key.startswith(f"prescriptions/prescription-{body['id']}-")
        assert data == b"%PDF-1.7 test"
        assert content_type == "application/pdf"
        assert db_session.get(Prescription, body["id"]).pdf_key == key

    def test_pdf_failure_still_creates_prescription(self, client, db_session, doctor_headers, consultation,
                                                    mock_pdf_pipeline, patient):
        mock_pdf_pipeline["pdf"].return_value.generate_prescription_pdf.side_effect = RuntimeError("no fonts")

        response = client.post("/api/prescriptions", headers=doctor_headers, json={
            "consultationId": consultation["id"],
            "patientId": patient.id,
            "medications": [{"name": "Paracetamol"}],
        })

        assert response.status_code == 201
        assert response.json()["pdfUrl"] is None
        assert db_session.query(Prescription).count() == 1

    def test_admin_without_doctor_profile_must_name_doctor(self, client, admin_headers, consultation,
                                                           mock_pdf_pipeline, patient, doctor):
        body = {
            "consultationId": consultation["id"],
            "patientId": patient.id,
            "medications": [{"name": "Paracetamol"}],
        }

        missing = client.post("/api/prescriptions", headers=admin_headers, json=body)
        named = client.post("/api/prescriptions", headers=admin_headers, json={**body, "doctorId": doctor.id})

        assert missing.status_code == 400
        assert missing.json() == {"error": "Doctor ID could not be resolved"}
        assert named.status_code == 201

    def test_requires_a_medication(self, client, doctor_headers, consultation, patient):
        response = client.post("/api/prescriptions", headers=doctor_headers, json={
            "consultationId": consultation["id"], "patientId": patient.id, "medications": [],
        })
        assert response.status_code == 400

    def test_list_by_patient(self, client, doctor_headers, consultation, mock_pdf_pipeline, patient):
        client.post("/api/prescriptions", headers=doctor_headers, json={
            "consultationId": consultation["id"], "patientId": patient.id, "medications": [{"name": "A"}],
        })

        mine = client.get(f"/api/prescriptions?patientId={patient.id}", headers=doctor_headers).json()
        nobody = client.get("/api/prescriptions?patientId=9999", headers=doctor_headers).json()

        assert len(mine) == 1
        assert nobody == []

    def test_update_and_delete(self, client, doctor_headers, consultation, mock_pdf_pipeline, patient):
        created = client.post("/api/prescriptions", headers=doctor_headers, json={
            "consultationId": consultation["id"], "patientId": patient.id, "medications": [{"name": "A"}],
        }).json()

        updated = client.patch(f"/api/prescriptions/{created['id']}", headers=doctor_headers,
                               json={"instructions": "Before bed"})
        deleted = client.delete(f"/api/prescriptions/{created['id']}", headers=doctor_headers)

        assert updated.status_code == 200
        assert updated.json()["instructions"] == "Before bed"
        assert updated.json()["medications"][0]["name"] == "A"
        assert deleted.json() == {"ok": True}
        mock_pdf_pipeline["delete"].assert_awaited_once()
        assert client.get(f"/api/prescriptions/{created['id']}", headers=doctor_headers).status_code == 404


class TestPatientAccess:

    @pytest.fixture
    def bob_records(self, client, db_session, clinic, doctor, doctor_headers, mock_pdf_pipeline):
        bob = create_patient(db_session, clinic, "bob@example.com", "Bob", "Stone")
        visit = Appointment(patient_id=bob.id, doctor_id=doctor.id, appointment_date=date(2024, 1, 11),
                            start_time="10:00", end_time="10:30", status="SCHEDULED")
        TenantScope(db_session, clinic.id).add(visit)
        db_session.commit()
        consultation = client.post("/api/consultations", headers=doctor_headers, json={
            "appointmentId": visit.id, "patientId": bob.id, "doctorId": doctor.id,
            "chiefComplaint": "Low mood",
        }).json()["data"]
        prescription = client.post("/api/prescriptions", headers=doctor_headers, json={
            "consultationId": consultation["id"], "patientId": bob.id, "medications": [{"name": "Sertraline"}],
        }).json()
        return {"consultation": consultation, "prescription": prescription}

    def test_patient_lists_only_own_consultations(self, client, patient, patient_headers, consultation, bob_records):
        listed = client.get("/api/consultations", headers=patient_headers).json()["data"]
        asked_for_bob = client.get(f"/api/consultations?patientId={bob_records['consultation']['patientId']}",
                                   headers=patient_headers).json()["data"]

        assert [c["id"] for c in listed] == [consultation["id"]]
        assert [c["patientId"] for c in asked_for_bob] == [patient.id]

    def test_patient_cannot_read_other_consultation(self, client, patient_headers, consultation, bob_records):
        other = client.get(f"/api/consultations/{bob_records['consultation']['id']}", headers=patient_headers)
        own = client.get(f"/api/consultations/{consultation['id']}", headers=patient_headers)

        assert other.status_code == 404
        assert other.json() == {"error": "Consultation not found"}
        assert own.status_code == 200

    def test_patient_lists_only_own_prescriptions(self, client, patient, patient_headers, doctor_headers,
                                                  consultation, bob_records):
        own = client.post("/api/prescriptions", headers=doctor_headers, json={
            "consultationId": consultation["id"], "patientId": patient.id, "medications": [{"name": "Honey"}],
        }).json()

        listed = client.get("/api/prescriptions", headers=patient_headers).json()

        assert [p["id"] for p in listed] == [own["id"]]
        assert client.get(f"/api/prescriptions/{own['id']}", headers=patient_headers).status_code == 200

    def test_patient_cannot_read_other_prescription(self, client, patient_headers, bob_records):
        response = client.get(f"/api/prescriptions/{bob_records['prescription']['id']}", headers=patient_headers)

        assert response.status_code == 404
        assert response.json() == {"error": "Prescription not found"}

    def test_staff_still_see_everyone(self, client, doctor_headers, consultation, bob_records):
        listed = client.get("/api/consultations", headers=doctor_headers).json()["data"]
        assert len(listed) == 2
