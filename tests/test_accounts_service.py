"""AccountService: profile lookups, updates and soft delete."""

import unittest

from identity.repositories import AccountRepository
from identity.services.accounts import AccountService
from identity.services.results import FailureKind, Success

from support import STRONG_PASSWORD, EngineTestCase


class TestAccountService(EngineTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.service = AccountService(self.session)
        self.alice = self.register(first_name="Alice", last_name="A")
        self.bob = self.register("bob", "bob@x.com")

    def test_get_all_lists_visible_accounts(self) -> None:
        usernames = [a.username for a in self.service.get_all()]
        self.assertEqual(sorted(usernames), ["alice", "bob"])

    def test_get_by_id_and_email(self) -> None:
        out = self.service.get_by_id(self.alice)
        self.assertEqual(out.email, "alice@x.com")
        self.assertEqual(out.roles, ["User"])
        self.assertEqual(self.service.get_by_email("BOB@x.com").id, self.bob)
        self.assertIsNone(self.service.get_by_id("nope"))
        self.assertIsNone(self.service.get_by_email("nobody@x.com"))

    def test_profile_carries_no_secrets(self) -> None:
        fields = self.service.get_by_id(self.alice).model_dump()
        self.assertNotIn("password_hash", fields)
        self.assertNotIn("refresh_token", fields)
        self.assertNotIn("security_stamp", fields)

    def test_exists_checks(self) -> None:
        self.assertTrue(self.service.email_exists("ALICE@X.COM"))
        self.assertTrue(self.service.username_exists("Bob"))
        self.assertFalse(self.service.username_exists("carol"))

    def test_update_profile(self) -> None:
        result = self.service.update_profile(
            self.alice, "Alicia", "Smith", phone_number="+100", modified_by=self.bob
        )
        self.assertIsInstance(result, Success)
        self.assertEqual(result.value.first_name, "Alicia")
        account = AccountRepository(self.session).find_by_id(self.alice)
        self.assertEqual(account.phone_number, "+100")
        self.assertEqual(account.modified_by, self.bob)
        self.assertIsNotNone(account.modified_at)

    def test_update_profile_validation_and_not_found(self) -> None:
        self.assertEqual(self.service.update_profile(self.alice, "x" * 300, "").kind, FailureKind.VALIDATION)
        self.assertEqual(self.service.update_profile("nope", "A", "B").kind, FailureKind.NOT_FOUND)

    def test_soft_delete_hides_account_and_revokes_refresh(self) -> None:
        auth = self.engine.login("alice", STRONG_PASSWORD).value
        self.assertIsInstance(self.service.delete(self.alice, deleted_by=self.bob), Success)

        self.assertIsNone(self.service.get_by_id(self.alice))
        self.assertEqual([a.username for a in self.service.get_all()], ["bob"])
        row = AccountRepository(self.session).find_by_id(self.alice, include_inactive=True)
        self.assertTrue(row.is_deleted)
        self.assertIsNone(row.refresh_token)
        self.assertEqual(self.engine.refresh(auth.access_token, auth.refresh_token).kind, FailureKind.INVALID_TOKEN)
        self.assertEqual(self.service.delete(self.alice).kind, FailureKind.NOT_FOUND)


if __name__ == "__main__":
    unittest.main()
