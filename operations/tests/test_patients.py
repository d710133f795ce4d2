"""
Patient intake API.

Covers required-field validation, role checks on delete and the demo
placeholder rows appended to the first page of the list.
"""
from django.test import override_settings
from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from operations.models import AuditEvent, PatientProfile, User
from operations.services.demo import DEMO_PATIENTS


class PatientAPITests(APITestCase):
    def setUp(self) -> None:
        self.admin = User.objects.create_user(username="admin1", password="P@ssw0rd1", role="admin")
        self.nurse = User.objects.create_user(username="nurse1", password="P@ssw0rd1", role="nurse")
        self.patient_user = User.objects.create_user(username="patient1", password="P@ssw0rd1", role="patient")
        self.patient = PatientProfile.objects.create(
            name="Ravi Kumar", age=45, gender="male", phone="9876500001", disease="Hypertension",
        )

    def authenticate(self, user: User) -> APIClient:
        client = APIClient()
        client.force_authenticate(user=user)
        return client

    def test_register_patient(self):
        client = self.authenticate(self.nurse)
        response = client.post("/api/patients", {
            "name": "Sunita Devi", "age": 38, "gender": "female", "phone": "9876500002",
            "blood_group": "A+", "disease": "Type 2 Diabetes",
        }, format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["patient"]["name"], "Sunita Devi")
        self.assertEqual(response.data["patient"]["status"], "outpatient")
        self.assertTrue(AuditEvent.objects.filter(action="patient_create").exists())

    def test_register_requires_name_age_gender_phone(self):
        client = self.authenticate(self.nurse)
        response = client.post("/api/patients", {"name": "Amit"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        fields = response.data["error"]["fields"]
        for name in ("age", "gender", "phone"):
            self.assertIn(name, fields)

    def test_markup_is_stripped_from_free_text(self):
        client = self.authenticate(self.nurse)
        response = client.post("/api/patients", {
            "name": "<b>Amit</b> Verma", "age": 29, "gender": "male", "phone": "9876500003",
        }, format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["patient"]["name"], "Amit Verma")

    @override_settings(DEMO_RECORDS_ENABLED=True)
    def test_list_puts_real_patients_before_demo_rows(self):
        client = self.authenticate(self.nurse)
        response = client.get("/api/patients")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        ids = [p["id"] for p in response.data["patients"]]
        self.assertEqual(ids[0], self.patient.id)
        self.assertEqual(ids[1:], [p["id"] for p in DEMO_PATIENTS])
        self.assertEqual(response.data["total"], 1 + len(DEMO_PATIENTS))

    @override_settings(DEMO_RECORDS_ENABLED=True)
    def test_search_does_not_mix_in_demo_rows(self):
        client = self.authenticate(self.nurse)
        response = client.get("/api/patients", {"search": "ravi"})
        self.assertEqual([p["name"] for p in response.data["patients"]], ["Ravi Kumar"])

    @override_settings(DEMO_RECORDS_ENABLED=False)
    def test_list_without_demo_rows(self):
        client = self.authenticate(self.admin)
        response = client.get("/api/patients")
        self.assertEqual(response.data["total"], 1)
        self.assertEqual(len(response.data["patients"]), 1)

    def test_update_patient(self):
        client = self.authenticate(self.nurse)
        response = client.patch(f"/api/patients/{self.patient.id}", {"status": "admitted"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.patient.refresh_from_db()
        self.assertEqual(self.patient.status, "admitted")

    def test_only_admin_can_delete(self):
        response = self.authenticate(self.nurse).delete(f"/api/patients/{self.patient.id}")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data["error"]["message"], "Only administrators can delete patients")
        self.assertTrue(PatientProfile.objects.filter(pk=self.patient.id).exists())

        response = self.authenticate(self.admin).delete(f"/api/patients/{self.patient.id}")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(PatientProfile.objects.filter(pk=self.patient.id).exists())

    def test_demo_patient_has_no_record(self):
        response = self.authenticate(self.nurse).get("/api/patients/demo-patient-1")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_patients_cannot_browse_the_register(self):
        response = self.authenticate(self.patient_user).get("/api/patients")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
