import base64
import json

from fastapi.testclient import TestClient

from app.api.deps import get_person_store
from app.core.config import get_settings
from app.main import app
from app.models.identity import PersonType
from tests.support import TempDatabaseTestCase


def _basic_auth(username, password):
    token = base64.b64encode(f"{username}:{password}".encode()).decode()
    return {"Authorization": f"Basic {token}"}


class ApiTestCase(TempDatabaseTestCase):
    def setUp(self):
        super().setUp()
        app.dependency_overrides[get_person_store] = lambda: self.store
        self.client = TestClient(app)
        settings = get_settings()
        self.admin = _basic_auth(settings.admin_username, settings.admin_password)

    def tearDown(self):
        app.dependency_overrides.clear()
        super().tearDown()

    def scan(self, payload, school_id):
        return self.client.post(
            "/api/scan-student-qr",
            json={"qrData": payload},
            headers={"X-School-Id": str(school_id), **self.admin},
        )


class ScanEndpointTests(ApiTestCase):
    def test_scan_resolves_person(self):
        ref = self.store.create_person(PersonType.STUDENT, 8, "Jane Doe", verified=True)

        response = self.scan(f"student:{ref.id}:8:verified", 8)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json(),
            {"id": ref.id, "type": "student", "schoolId": 8, "name": "Jane Doe", "verified": True},
        )

    def test_scan_errors_are_distinct(self):
        ref = self.store.create_person(PersonType.STUDENT, 8, "Jane Doe")
        cases = (
            (f"student:{ref.id}:8:verified", 9, 403, "SchoolMismatch"),
            ("student:999:8:verified", 8, 404, "PersonNotFound"),
            ("student:42:8:unverified", 8, 400, "UnverifiedPayload"),
            ("ghost:42:8:verified", 8, 400, "UnknownPersonType"),
            ("student:abc:8:verified", 8, 400, "InvalidIdentifier"),
            ("nonsense", 8, 400, "UnrecognizedPayload"),
        )
        for payload, school_id, status_code, kind in cases:
            with self.subTest(payload=payload):
                response = self.scan(payload, school_id)
                self.assertEqual(response.status_code, status_code)
                self.assertEqual(response.json()["detail"]["error"], kind)

    def test_scan_requires_school_context(self):
        response = self.client.post("/api/scan-student-qr", json={"qrData": "student:1:8:verified"}, headers=self.admin)
        self.assertEqual(response.status_code, 400)

    def test_scan_requires_payload(self):
        response = self.client.post("/api/scan-student-qr", json={}, headers={"X-School-Id": "8", **self.admin})
        self.assertEqual(response.status_code, 422)


class AdminEndpointTests(ApiTestCase):
    def create(self, person_type, name, verified, school_id=8, **extra):
        data = {"type": person_type, "name": name, "verified": str(verified).lower(), **extra}
        return self.client.post(
            "/admin/people",
            data=data,
            headers={"X-School-Id": str(school_id), **self.admin},
        )

    def test_requires_admin(self):
        response = self.client.get("/admin/people", headers={"X-School-Id": "8"})
        self.assertEqual(response.status_code, 401)
        response = self.client.get(
            "/admin/people",
            headers={"X-School-Id": "8", **_basic_auth("admin", "wrong")},
        )
        self.assertEqual(response.status_code, 401)

    def test_verified_person_gets_code_on_creation(self):
        response = self.create("student", "Jane Doe", True)

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body["qrCode"].startswith("data:image/png;base64,"))
        envelope = json.loads(body["qrCodeData"])
        self.assertEqual(envelope["id"], body["id"])
        self.assertEqual(envelope["schoolId"], 8)

    def test_unverified_person_gets_no_code(self):
        body = self.create("child", "Sam", False, parentId="4").json()
        self.assertIsNone(body["qrCode"])

        response = self.client.get(f"/api/qrcode/child/{body['id']}", headers={"X-School-Id": "8", **self.admin})
        self.assertEqual(response.status_code, 404)

    def test_verify_then_fetch_code(self):
        person_id = self.create("child", "Sam", False).json()["id"]

        response = self.client.post(
            f"/admin/people/child/{person_id}/verify",
            headers={"X-School-Id": "8", **self.admin},
        )
        self.assertEqual(response.status_code, 200)

        fetched = self.client.get(f"/api/qrcode/child/{person_id}", headers={"X-School-Id": "8", **self.admin})
        self.assertEqual(fetched.status_code, 200)
        self.assertEqual(json.loads(fetched.json()["qrCodeData"])["type"], "child")

    def test_code_is_not_visible_from_another_school(self):
        person_id = self.create("student", "Jane Doe", True).json()["id"]
        response = self.client.get(f"/api/qrcode/student/{person_id}", headers={"X-School-Id": "9", **self.admin})
        self.assertEqual(response.status_code, 404)

    def test_regenerate_keeps_old_card_working(self):
        created = self.create("student", "Jane Doe", True).json()
        old_code = json.loads(created["qrCodeData"])["code"]

        response = self.client.post(
            f"/admin/qrcode/student/{created['id']}/regenerate",
            headers={"X-School-Id": "8", **self.admin},
        )

        self.assertEqual(response.status_code, 200)
        self.assertNotEqual(json.loads(response.json()["qrCodeData"])["code"], old_code)
        self.assertEqual(self.scan(f"student:{created['id']}:8:verified", 8).status_code, 200)

    def test_regenerate_in_other_school_is_not_found(self):
        person_id = self.create("student", "Jane Doe", True).json()["id"]
        response = self.client.post(
            f"/admin/qrcode/student/{person_id}/regenerate",
            headers={"X-School-Id": "9", **self.admin},
        )
        self.assertEqual(response.status_code, 404)

    def test_list_people(self):
        self.create("student", "A", True)
        self.create("child", "B", False)
        self.create("student", "C", True, school_id=9)

        response = self.client.get("/admin/people", headers={"X-School-Id": "8", **self.admin})

        self.assertEqual([p["name"] for p in response.json()["people"]], ["A", "B"])

    def test_invalid_type_is_rejected(self):
        response = self.client.get("/api/qrcode/teacher/1", headers={"X-School-Id": "8", **self.admin})
        self.assertEqual(response.status_code, 422)


class ScannerAuthTests(ApiTestCase):
    def test_scan_requires_credentials(self):
        ref = self.store.create_person(PersonType.STUDENT, 8, "Jane Doe", verified=True)

        response = self.client.post(
            "/api/scan-student-qr",
            json={"qrData": f"student:{ref.id}:8:verified"},
            headers={"X-School-Id": "8"},
        )

        self.assertEqual(response.status_code, 401)
        self.assertNotIn("Jane Doe", response.text)

    def test_qrcode_requires_credentials(self):
        person_id = self.client.post(
            "/admin/people",
            data={"type": "student", "name": "Jane Doe", "verified": "true"},
            headers={"X-School-Id": "8", **self.admin},
        ).json()["id"]

        response = self.client.get(f"/api/qrcode/student/{person_id}", headers={"X-School-Id": "8"})

        self.assertEqual(response.status_code, 401)
        self.assertNotIn("qrCodeData", response.text)

    def test_scan_rejects_wrong_password(self):
        response = self.client.post(
            "/api/scan-student-qr",
            json={"qrData": "student:1:8:verified"},
            headers={"X-School-Id": "8", **_basic_auth("admin", "wrong")},
        )
        self.assertEqual(response.status_code, 401)

    def test_non_ascii_credentials_are_rejected_not_crashing(self):
        for username, password in (("admin", "pässword"), ("ädmin", "admin1")):
            with self.subTest(username=username, password=password):
                response = self.client.get(
                    "/admin/people",
                    headers={"X-School-Id": "8", **_basic_auth(username, password)},
                )
                self.assertEqual(response.status_code, 401)

    def test_deeply_nested_payload_is_unrecognized(self):
        response = self.scan("[" * 100000, 8)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"]["error"], "UnrecognizedPayload")
