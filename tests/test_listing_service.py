import unittest

from ciphershare.core.errors import NotFoundError
from ciphershare.files.service import FileService
from ciphershare.listing.service import ListingService
from ciphershare.sharing.service import SharingService

from support import EDITOR_ID, VIEWER_ID, DirectoryTestCase


class TestListing(DirectoryTestCase):

    def setUp(self):
        super().setUp()
        self.files = FileService(self.session, self.store)
        self.sharing = SharingService(self.session)
        self.listing = ListingService(self.session)

        self.report = self.files.upload(self.alice, b"report", "report.pdf", "application/pdf", "Q3")
        self.budget = self.files.upload(self.alice, b"budget", "budget.xlsx", None, "2026")
        self.notes = self.files.upload(self.erin, b"notes", "notes.txt", "text/plain")

    def test_my_files_most_recent_first(self):
        self.files.edit_my_file(self.alice, self.report.id, "report-v2", "Q3")
        names = [f.file_name for f in self.listing.my_files(self.alice)]
        self.assertEqual(names, ["report-v2.pdf", "budget.xlsx"])
        self.assertEqual(self.listing.my_files(self.bob), [])

    def test_shared_with_me(self):
        self.sharing.share_with_user(self.alice, self.report.id, self.bob, EDITOR_ID)
        self.sharing.share_with_user(self.erin, self.notes.id, self.bob, VIEWER_ID)

        entries = self.listing.shared_with_me(self.bob)
        self.assertEqual(len(entries), 2)
        by_file = {e.file_id: e for e in entries}
        self.assertEqual(by_file[self.report.id].name, "Alice")
        self.assertEqual(by_file[self.report.id].permission_name, "Editor")
        self.assertEqual(by_file[self.report.id].file_description, "Q3")
        self.assertEqual(by_file[self.notes.id].permission_name, "Viewer")

    def test_discoverable_excludes_own_granted_and_requested(self):
        names = [f.file_name for f in self.listing.discoverable_files(self.bob)]
        self.assertEqual(names, ["budget.xlsx", "notes.txt", "report.pdf"])

        self.sharing.share_with_user(self.alice, self.report.id, self.bob, VIEWER_ID)
        self.sharing.request_access(self.bob, self.notes.id, VIEWER_ID)

        entries = self.listing.discoverable_files(self.bob)
        self.assertEqual([f.file_name for f in entries], ["budget.xlsx"])
        self.assertEqual(entries[0].name, "Alice")

        own = [f.file_name for f in self.listing.discoverable_files(self.alice)]
        self.assertEqual(own, ["notes.txt"])

    def test_pending_requests_only_for_owner(self):
        self.sharing.request_access(self.bob, self.report.id, EDITOR_ID)
        self.sharing.request_access(self.carol, self.budget.id, VIEWER_ID)
        self.sharing.request_access(self.carol, self.notes.id, VIEWER_ID)

        entries = self.listing.pending_requests(self.alice)
        self.assertEqual(sorted((e.name, e.file_name, e.permission_name) for e in entries), [
            ("Bob", "report.pdf", "Editor"),
            ("Carol", "budget.xlsx", "Viewer"),
        ])
        self.assertEqual([e.file_name for e in self.listing.pending_requests(self.erin)], ["notes.txt"])
        self.assertEqual(self.listing.pending_requests(self.bob), [])

    def test_access_list_by_permission(self):
        self.sharing.share_with_department(self.alice, self.report.id, self.engineering, VIEWER_ID)
        self.sharing.share_with_user(self.alice, self.report.id, self.erin, EDITOR_ID)

        viewers = self.listing.access_list(self.alice, self.report.id, "Viewer")
        self.assertEqual([e.name for e in viewers], ["Bob", "Carol", "Dave"])
        self.assertTrue(all(e.dep_name == "Engineering" for e in viewers))

        editors = self.listing.access_list(self.alice, self.report.id, "Editor")
        self.assertEqual([(e.name, e.email, e.dep_name) for e in editors], [("Erin", "erin@example.com", "HR")])

    def test_access_list_visibility(self):
        self.sharing.share_with_user(self.alice, self.report.id, self.bob, VIEWER_ID)

        # A grantee can see who else has access
        self.assertEqual([e.name for e in self.listing.access_list(self.bob, self.report.id, "Viewer")], ["Bob"])
        with self.assertRaises(NotFoundError):
            self.listing.access_list(self.carol, self.report.id, "Viewer")
        with self.assertRaises(NotFoundError):
            self.listing.access_list(self.alice, 999, "Viewer")

    def test_grant_without_department(self):
        grant = self.sharing.share_with_user(self.erin, self.notes.id, self.alice, VIEWER_ID)
        self.assertIsNone(grant.shared_with_department_id)
        entries = self.listing.access_list(self.erin, self.notes.id, "Viewer")
        self.assertEqual([(e.name, e.dep_name) for e in entries], [("Alice", None)])

    def test_share_targets(self):
        self.assertEqual([d.dep_name for d in self.listing.departments()], ["Engineering", "HR"])
        emails = [u.email for u in self.listing.users_to_share_with(self.alice)]
        self.assertEqual(emails, ["bob@example.com", "carol@example.com", "dave@example.com", "erin@example.com"])


if __name__ == "__main__":
    unittest.main()
