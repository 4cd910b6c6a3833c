"""identity.scripts.create_user: account creation from the command line."""

import io
import unittest
from contextlib import redirect_stderr, redirect_stdout
from unittest.mock import patch

from identity.repositories import AccountRepository
from identity.scripts import create_user

from support import STRONG_PASSWORD, make_session_factory, make_settings


class TestCreateUser(unittest.TestCase):
    def setUp(self) -> None:
        self.Session = make_session_factory()
        patches = [
            patch.object(create_user, "SessionLocal", self.Session),
            patch.object(create_user, "get_settings", make_settings),
        ]
        for p in patches:
            p.start()
            self.addCleanup(p.stop)

    def tearDown(self) -> None:
        self.Session.kw["bind"].dispose()

    def test_creates_admin(self) -> None:
        out = io.StringIO()
        with redirect_stdout(out):
            code = create_user.main(["admin", "admin@example.com", STRONG_PASSWORD, "--role", "Admin"])
        self.assertEqual(code, 0)
        self.assertIn("Created user 'admin'", out.getvalue())
        with self.Session() as session:
            account = AccountRepository(session).find_by_username("admin")
            self.assertEqual(account.role_names, ["Admin"])

    def test_reports_validation_errors(self) -> None:
        err = io.StringIO()
        with redirect_stderr(err):
            code = create_user.main(["bad name", "nope", "weak"])
        self.assertEqual(code, 1)
        self.assertIn("username:", err.getvalue())
        self.assertIn("password:", err.getvalue())

    def test_duplicate_username(self) -> None:
        with redirect_stdout(io.StringIO()):
            create_user.main(["admin", "admin@example.com", STRONG_PASSWORD])
        err = io.StringIO()
        with redirect_stderr(err):
            code = create_user.main(["ADMIN", "other@example.com", STRONG_PASSWORD])
        self.assertEqual(code, 1)
        self.assertIn("Username already exists", err.getvalue())


if __name__ == "__main__":
    unittest.main()
