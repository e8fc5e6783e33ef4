import inspect
import unittest
from unittest.mock import patch

from fastapi.routing import APIRoute
from fastapi.testclient import TestClient
from sqlmodel import Session

from ciphershare.auth.service import create_access_token
from ciphershare.core.database import get_session
from ciphershare.core.settings import settings
from ciphershare.files.router import content_disposition
from ciphershare.main import app
from ciphershare.models.File import StoredFile
from ciphershare.storage.store import get_content_store

from support import EDITOR_ID, VIEWER_ID, DirectoryTestCase


class ApiTestCase(DirectoryTestCase):

    def setUp(self):
        super().setUp()

        def override_session():
            with Session(self.engine) as session:
                yield session

        app.dependency_overrides[get_session] = override_session
        app.dependency_overrides[get_content_store] = lambda: self.store
        self.addCleanup(app.dependency_overrides.clear)
        self.client = TestClient(app)

    def auth(self, user_id: int) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user_id)}"}

    def upload(self, user_id: int, name: str = "report.pdf", content: bytes = b"%PDF quarterly", description: str = "Q3"):
        resp = self.client.post(
            "/files",
            headers=self.auth(user_id),
            files={"file": (name, content, "application/pdf")},
            data={"file_description": description},
        )
        self.assertEqual(resp.status_code, 201, resp.text)
        return resp.json()["file"]


class TestAuthentication(ApiTestCase):

    def test_missing_token(self):
        resp = self.client.get("/files/mine")
        self.assertEqual(resp.status_code, 401)

    def test_invalid_token(self):
        resp = self.client.get("/files/mine", headers={"Authorization": "Bearer not-a-token"})
        self.assertEqual(resp.status_code, 401)

    def test_health(self):
        self.assertEqual(self.client.get("/health").json(), {"status": "healthy"})


class TestFileEndpoints(ApiTestCase):

    def test_upload_and_download(self):
        created = self.upload(self.alice)
        self.assertEqual(created["file_name"], "report.pdf")
        self.assertNotIn("aes_key", created)

        resp = self.client.get(f"/files/{created['id']}/download", headers=self.auth(self.alice))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.content, b"%PDF quarterly")
        self.assertEqual(resp.headers["content-type"], "application/pdf")
        self.assertIn('filename="report.pdf"', resp.headers["content-disposition"])

    def test_listings(self):
        created = self.upload(self.alice)
        mine = self.client.get("/files/mine", headers=self.auth(self.alice)).json()
        self.assertEqual([f["id"] for f in mine], [created["id"]])
        self.assertNotIn("aes_key", mine[0])

        discover = self.client.get("/files/discover", headers=self.auth(self.bob)).json()
        self.assertEqual([(f["file_name"], f["name"]) for f in discover], [("report.pdf", "Alice")])
        self.assertEqual(self.client.get("/files/shared", headers=self.auth(self.bob)).json(), [])

    def test_stranger_gets_not_found(self):
        created = self.upload(self.alice)
        resp = self.client.get(f"/files/{created['id']}/download", headers=self.auth(self.bob))
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["message"], "File not found.")

    def test_edit_flow(self):
        created = self.upload(self.alice)
        self.upload(self.alice, name="summary.pdf")

        info = self.client.get(f"/files/{created['id']}/edit-info", headers=self.auth(self.alice)).json()
        self.assertEqual(info, {"file_name": "report", "file_description": "Q3"})

        resp = self.client.put(f"/files/{created['id']}", headers=self.auth(self.alice),
                               json={"file_name": "report", "file_description": "Q3"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["code"], "no_change")

        resp = self.client.put(f"/files/{created['id']}", headers=self.auth(self.alice),
                               json={"file_name": "summary", "file_description": "Q3"})
        self.assertEqual(resp.status_code, 422)
        self.assertEqual(resp.json()["code"], "filename_exists")

        resp = self.client.put(f"/files/{created['id']}", headers=self.auth(self.alice),
                               json={"file_name": "annual", "file_description": "Year"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["message"], "File metadata edited successfully.")

    def test_empty_name_rejected(self):
        created = self.upload(self.alice)
        resp = self.client.put(f"/files/{created['id']}", headers=self.auth(self.alice),
                               json={"file_name": "", "file_description": ""})
        self.assertEqual(resp.status_code, 422)

    def test_viewer_cannot_edit_shared(self):
        created = self.upload(self.alice)
        self.client.post("/sharing/users", headers=self.auth(self.alice),
                         json={"file_id": created["id"], "shared_with_user_id": self.bob, "permission_id": VIEWER_ID})
        resp = self.client.put(f"/files/shared/{created['id']}", headers=self.auth(self.bob),
                               json={"file_name": "mine", "file_description": ""})
        self.assertEqual(resp.status_code, 403)

    def test_corrupted_key_is_reported_generically(self):
        created = self.upload(self.alice)
        row = self.session.get(StoredFile, created["id"])
        row.aes_key = "00"
        self.session.add(row)
        self.session.commit()

        resp = self.client.get(f"/files/{created['id']}/download", headers=self.auth(self.alice))
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json(), {"message": "The file could not be retrieved.", "code": "KeyFormatError"})

    def test_delete(self):
        created = self.upload(self.alice)
        resp = self.client.delete(f"/files/{created['id']}", headers=self.auth(self.bob))
        self.assertEqual(resp.status_code, 404)

        resp = self.client.delete(f"/files/{created['id']}", headers=self.auth(self.alice))
        self.assertEqual(resp.json(), {"message": "File deleted successfully."})
        self.assertEqual(self.count(StoredFile), 0)

    def test_download_non_latin_name(self):
        created = self.upload(self.alice, name="报告.pdf", content=b"contents")
        self.assertEqual(created["file_name"], "报告.pdf")

        resp = self.client.get(f"/files/{created['id']}/download", headers=self.auth(self.alice))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.content, b"contents")
        disposition = resp.headers["content-disposition"]
        self.assertIn("filename*=UTF-8''%E6%8A%A5%E5%91%8A.pdf", disposition)
        self.assertIn('filename="__.pdf"', disposition)

    def test_upload_over_limit_is_rejected_before_storing(self):
        with patch.object(settings, "MAX_UPLOAD_SIZE", 4):
            resp = self.client.post(
                "/files",
                headers=self.auth(self.alice),
                files={"file": ("big.bin", b"0123456789", "application/octet-stream")},
            )
        self.assertEqual(resp.status_code, 413)
        self.assertEqual(resp.json()["message"], "File exceeds the maximum upload size.")
        self.assertEqual(self.count(StoredFile), 0)
        self.assertEqual(self.store._blobs, {})


class TestContentDisposition(unittest.TestCase):

    def test_ascii_name(self):
        self.assertEqual(
            content_disposition("report.pdf"),
            "attachment; filename=\"report.pdf\"; filename*=UTF-8''report.pdf",
        )

    def test_quotes_and_separators_are_escaped(self):
        header = content_disposition('say "hi"; now.txt')
        self.assertIn('filename="say _hi_; now.txt"', header)
        self.assertIn("filename*=UTF-8''say%20%22hi%22%3B%20now.txt", header)
        header.encode("latin-1")


class TestHandlersRunInThreadpool(unittest.TestCase):

    def test_file_and_sharing_handlers_are_sync(self):
        routes = [r for r in app.routes if isinstance(r, APIRoute) and r.path.startswith(("/files", "/sharing"))]
        self.assertTrue(routes)
        for route in routes:
            with self.subTest(path=route.path):
                self.assertFalse(inspect.iscoroutinefunction(route.endpoint))


class TestSharingEndpoints(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.file = self.upload(self.alice)

    def test_request_approve_flow(self):
        resp = self.client.post("/sharing/requests", headers=self.auth(self.bob),
                                json={"requested_file_id": self.file["id"], "requested_permission_id": EDITOR_ID})
        self.assertEqual(resp.status_code, 201)
        request_id = resp.json()["request"]["id"]

        pending = self.client.get("/sharing/requests", headers=self.auth(self.alice)).json()
        self.assertEqual([(p["id"], p["name"], p["permission_name"]) for p in pending], [(request_id, "Bob", "Editor")])

        resp = self.client.post(f"/sharing/requests/{request_id}/approve", headers=self.auth(self.alice))
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json()["grant"]["shared_with_department_id"], self.engineering)

        shared = self.client.get("/files/shared", headers=self.auth(self.bob)).json()
        self.assertEqual([(s["file_name"], s["permission_name"]) for s in shared], [("report.pdf", "Editor")])

        resp = self.client.post("/sharing/requests", headers=self.auth(self.bob),
                                json={"requested_file_id": self.file["id"], "requested_permission_id": VIEWER_ID})
        self.assertEqual(resp.status_code, 422)
        self.assertEqual(resp.json()["message"], "File shared with this user already.")

    def test_reject(self):
        resp = self.client.post("/sharing/requests", headers=self.auth(self.bob),
                                json={"requested_file_id": self.file["id"], "requested_permission_id": VIEWER_ID})
        request_id = resp.json()["request"]["id"]

        resp = self.client.delete(f"/sharing/requests/{request_id}", headers=self.auth(self.alice))
        self.assertEqual(resp.json(), {"message": "Request has been rejected."})
        self.assertEqual(self.client.get("/sharing/requests", headers=self.auth(self.alice)).json(), [])

    def test_department_share_and_grant_maintenance(self):
        body = {"file_id": self.file["id"], "shared_with_department_id": self.engineering, "permission_id": EDITOR_ID}
        resp = self.client.post("/sharing/departments", headers=self.auth(self.alice), json=body)
        self.assertEqual(resp.status_code, 201)
        granted = resp.json()["result"]["granted"]
        self.assertEqual(len(granted), 3)

        resp = self.client.post("/sharing/departments", headers=self.auth(self.alice), json=body)
        self.assertEqual(resp.status_code, 422)
        self.assertEqual(resp.json()["code"], "department_share_exists")

        editors = self.client.get(f"/sharing/files/{self.file['id']}/access", headers=self.auth(self.alice),
                                  params={"permission": "Editor"}).json()
        self.assertEqual([e["name"] for e in editors], ["Bob", "Carol", "Dave"])

        grant_id = granted[0]["id"]
        resp = self.client.put(f"/sharing/grants/{grant_id}", headers=self.auth(self.alice),
                               json={"shared_permission_id": VIEWER_ID})
        self.assertEqual(resp.json()["message"], "User access to file updated successfully.")

        resp = self.client.put(f"/sharing/grants/{grant_id}", headers=self.auth(self.alice),
                               json={"shared_permission_id": VIEWER_ID})
        self.assertEqual(resp.json()["code"], "no_change")

        resp = self.client.delete(f"/sharing/grants/{grant_id}", headers=self.auth(self.alice))
        self.assertEqual(resp.json()["message"], "File unshared with the user successfully.")

        viewers = self.client.get(f"/sharing/files/{self.file['id']}/access", headers=self.auth(self.alice)).json()
        self.assertEqual(viewers, [])

    def test_access_list_bad_permission(self):
        resp = self.client.get(f"/sharing/files/{self.file['id']}/access", headers=self.auth(self.alice),
                               params={"permission": "Owner"})
        self.assertEqual(resp.status_code, 422)

    def test_share_targets(self):
        departments = self.client.get("/sharing/targets/departments", headers=self.auth(self.alice)).json()
        self.assertEqual([d["dep_name"] for d in departments], ["Engineering", "HR"])

        users = self.client.get("/sharing/targets/users", headers=self.auth(self.bob)).json()
        self.assertNotIn(self.bob, [u["id"] for u in users])
        self.assertEqual(len(users), 4)

    def test_audit_log(self):
        entries = self.client.get("/audit/log", headers=self.auth(self.alice)).json()
        self.assertEqual([e["action"] for e in entries], ["FILE_UPLOAD"])


if __name__ == "__main__":
    unittest.main()
