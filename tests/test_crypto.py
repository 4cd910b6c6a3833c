"""SymmetricCipher: Fernet encryption keyed from ENCRYPTION_KEY."""

import time
import unittest

from identity.core.crypto import InvalidToken, SymmetricCipher

from support import make_settings


class TestSymmetricCipher(unittest.TestCase):
    def setUp(self) -> None:
        self.cipher = SymmetricCipher(make_settings())

    def test_round_trip(self) -> None:
        ciphertext = self.cipher.encrypt("reset:acc-1")
        self.assertNotIn("reset", ciphertext)
        self.assertEqual(self.cipher.decrypt(ciphertext), "reset:acc-1")

    def test_ciphertexts_differ_per_call(self) -> None:
        self.assertNotEqual(self.cipher.encrypt("same"), self.cipher.encrypt("same"))

    def test_other_key_cannot_decrypt(self) -> None:
        other = SymmetricCipher(make_settings(ENCRYPTION_KEY="another-encryption-key-0123456789-xyz"))
        with self.assertRaises(InvalidToken):
            other.decrypt(self.cipher.encrypt("secret"))

    def test_tampered_ciphertext(self) -> None:
        ciphertext = self.cipher.encrypt("secret")
        tampered = ciphertext[:-4] + ("AAAA" if not ciphertext.endswith("AAAA") else "BBBB")
        with self.assertRaises(InvalidToken):
            self.cipher.decrypt(tampered)

    def test_ttl(self) -> None:
        old = self.cipher.encrypt("secret", at_time=int(time.time()) - 120)
        self.assertEqual(self.cipher.decrypt(old, ttl_seconds=300), "secret")
        with self.assertRaises(InvalidToken):
            self.cipher.decrypt(old, ttl_seconds=60)

    def test_ttl_measured_at_given_time(self) -> None:
        issued = 1_700_000_000
        ciphertext = self.cipher.encrypt("secret", at_time=issued)
        self.assertEqual(
            self.cipher.decrypt(ciphertext, ttl_seconds=60, current_time=issued + 59), "secret"
        )
        with self.assertRaises(InvalidToken):
            self.cipher.decrypt(ciphertext, ttl_seconds=60, current_time=issued + 61)


if __name__ == "__main__":
    unittest.main()
