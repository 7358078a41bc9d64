"""HTTP tests for the public and operator routers."""

import base64
import dataclasses
import json
from pathlib import Path
import sys
import tempfile
import unittest

from fastapi.testclient import TestClient


PROJECT_ROOT = Path(__file__).resolve().parents[2]
BACKEND_ROOT = PROJECT_ROOT / "backend"
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from core.config import load_settings
from main import create_app
from services.hash_verifier import compute_digest


AADHAAR_BYTES = b"\xff\xd8\xff\xe0" + b"aadhaar-original" * 64
ADMIN_HEADERS = {"X-Operator-Id": "admin_1", "X-Operator-Role": "ADMIN"}
REVIEWER_HEADERS = {"X-Operator-Id": "reviewer_1", "X-Operator-Role": "REVIEWER"}

PROFILE = {
    "name": "Anita Sharma",
    "age": 30,
    "email": "anita@example.com",
    "employment_type": "Salaried",
    "monthly_income": 120000,
    "existing_emi": 5000,
    "loan_amount": 200000,
    "tenure_months": 24,
}


class ApiTestCase(unittest.TestCase):
    """Runs the app against in-memory repositories and a temporary whitelist."""

    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.whitelist_path = Path(self._tmp.name) / "whitelist.json"
        self.whitelist_path.write_text(
            json.dumps(
                {"entries": [{"identity_claim": "Anita Sharma", "document_type": "aadhaar", "digests": [compute_digest(AADHAAR_BYTES)]}]}
            ),
            encoding="utf-8",
        )
        settings = dataclasses.replace(
            load_settings(),
            firebase_enabled=False,
            ocr_enabled=False,
            explanation_enabled=False,
            whitelist_path=str(self.whitelist_path),
            admin_operators={"admin_1": "ADMIN", "reviewer_1": "REVIEWER"},
            override_limit=1,
        )
        self.app = create_app(settings)
        self.addCleanup(self.app.state.decision_service.shutdown)
        self.client = TestClient(self.app)

    def _submit(self, **profile_overrides) -> dict:
        response = self.client.post(
            "/applications",
            json={
                "profile": {**PROFILE, **profile_overrides},
                "documents": [
                    {
                        "document_type": "aadhaar",
                        "content_base64": base64.b64encode(AADHAAR_BYTES).decode("ascii"),
                        "filename": "aadhaar.jpg",
                    }
                ],
            },
        )
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()


class PublicRouteTests(ApiTestCase):
    def test_health(self) -> None:
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "ok")
        self.assertEqual(response.json()["whitelist_entries"], 1)

    def test_score_profile(self) -> None:
        response = self.client.post("/risk/score", json=PROFILE)
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["risk_score"], 100)
        self.assertEqual(body["decision"], "approved")
        self.assertEqual(body["breakdown"]["income_score"], 35)

    def test_score_profile_rejects_invalid_input(self) -> None:
        response = self.client.post("/risk/score", json={**PROFILE, "loan_amount": 10})
        self.assertEqual(response.status_code, 422)

    def test_submit_and_fetch_application(self) -> None:
        body = self._submit()
        self.assertTrue(body["success"])
        self.assertEqual(body["status"], "approved")
        self.assertEqual(body["stage"], "completed")
        self.assertEqual(body["kyc"]["documents_passed"], 1)

        fetched = self.client.get("/applications/{0}".format(body["application_id"]))
        self.assertEqual(fetched.status_code, 200)
        self.assertEqual(fetched.json()["decision"], "approved")

        documents = self.client.get("/applications/{0}/documents".format(body["application_id"])).json()
        self.assertEqual(len(documents["documents"]), 1)
        self.assertEqual(documents["verifications"][0]["match_method"], "exact_digest")

    def test_invalid_base64_is_rejected(self) -> None:
        response = self.client.post(
            "/applications",
            json={"profile": PROFILE, "documents": [{"document_type": "pan", "content_base64": "###"}]},
        )
        self.assertEqual(response.status_code, 422)

    def test_unknown_application_is_404(self) -> None:
        self.assertEqual(self.client.get("/applications/app_missing").status_code, 404)


class AdminRouteTests(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.application_id = self._submit()["application_id"]

    def _audit_count(self) -> int:
        response = self.client.get("/admin/applications/{0}/audit".format(self.application_id), headers=REVIEWER_HEADERS)
        self.assertEqual(response.status_code, 200)
        return len(response.json()["entries"])

    def test_operator_headers_are_required(self) -> None:
        payload = {"application_id": self.application_id, "new_decision": "rejected", "reason": "Fraud signal"}
        self.assertEqual(self.client.post("/admin/override", json=payload).status_code, 401)
        self.assertEqual(
            self.client.post(
                "/admin/override",
                json=payload,
                headers={"X-Operator-Id": "admin_1", "X-Operator-Role": "REVIEWER"},
            ).status_code,
            401,
        )
        self.assertEqual(self.client.post("/admin/override", json=payload, headers=REVIEWER_HEADERS).status_code, 403)

    def test_override_requires_reason(self) -> None:
        before = self._audit_count()
        response = self.client.post(
            "/admin/override",
            json={"application_id": self.application_id, "new_decision": "rejected", "reason": "  "},
            headers=ADMIN_HEADERS,
        )
        self.assertEqual(response.status_code, 422)
        self.assertEqual(self._audit_count(), before)
        self.assertEqual(self.client.get("/applications/{0}".format(self.application_id)).json()["decision"], "approved")

    def test_override_then_limit(self) -> None:
        payload = {
            "application_id": self.application_id,
            "new_decision": "rejected",
            "reason": "Income proof could not be verified",
            "expected_decision": "approved",
        }
        response = self.client.post("/admin/override", json=payload, headers=ADMIN_HEADERS)
        self.assertEqual(response.status_code, 200, response.text)
        body = response.json()
        self.assertEqual(body["message"], "Decision updated to rejected")
        self.assertEqual(body["decision"]["decision_maker"], "admin")
        self.assertEqual(body["decision"]["actor"], "admin_1")

        again = self.client.post("/admin/override", json={**payload, "expected_decision": None}, headers=ADMIN_HEADERS)
        self.assertEqual(again.status_code, 409)

        fetched = self.client.get("/applications/{0}".format(self.application_id)).json()
        self.assertEqual(fetched["status"], "rejected")
        self.assertEqual(fetched["decision_maker"], "admin")

    def test_unknown_decision_is_422(self) -> None:
        response = self.client.post(
            "/admin/override",
            json={"application_id": self.application_id, "new_decision": "maybe", "reason": "Unsure"},
            headers=ADMIN_HEADERS,
        )
        self.assertEqual(response.status_code, 422)

    def test_list_edit_and_stats(self) -> None:
        listed = self.client.get("/admin/applications", params={"status": "approved"}, headers=REVIEWER_HEADERS)
        self.assertEqual(listed.status_code, 200)
        self.assertEqual(listed.json()["count"], 1)

        refused = self.client.patch(
            "/admin/applications/{0}".format(self.application_id),
            json={"updates": {"risk_score": 10}},
            headers=ADMIN_HEADERS,
        )
        self.assertEqual(refused.status_code, 422)

        edited = self.client.patch(
            "/admin/applications/{0}".format(self.application_id),
            json={"updates": {"existing_emi": 7000}, "admin_note": "Updated from bank statement"},
            headers=ADMIN_HEADERS,
        )
        self.assertEqual(edited.status_code, 200, edited.text)
        self.assertEqual(edited.json()["application"]["profile"]["existing_emi"], 7000)

        stats = self.client.get("/admin/stats", headers=REVIEWER_HEADERS).json()
        self.assertEqual(stats["total"], 1)
        self.assertEqual(stats["approved"], 1)

    def test_delete_keeps_audit_trail(self) -> None:
        self.assertEqual(
            self.client.delete("/admin/applications/{0}".format(self.application_id), headers=REVIEWER_HEADERS).status_code,
            403,
        )
        response = self.client.delete(
            "/admin/applications/{0}".format(self.application_id),
            params={"reason": "Test data"},
            headers=ADMIN_HEADERS,
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["documents_deleted"], 1)
        self.assertEqual(self.client.get("/applications/{0}".format(self.application_id)).status_code, 404)
        self.assertEqual(self._audit_count(), 6)

    def test_whitelist_reload(self) -> None:
        ok = self.client.post("/admin/whitelist/reload", headers=ADMIN_HEADERS)
        self.assertEqual(ok.status_code, 200)
        self.assertEqual(ok.json()["entries"], 1)

        self.whitelist_path.write_text("[broken", encoding="utf-8")
        broken = self.client.post("/admin/whitelist/reload", headers=ADMIN_HEADERS)
        self.assertEqual(broken.status_code, 422)
        self.assertEqual(self.client.get("/health").json()["whitelist_entries"], 1)


if __name__ == "__main__":
    unittest.main()
