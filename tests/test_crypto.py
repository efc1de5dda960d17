import base64
import json
import unittest

from utils.crypto import (
    IV_LENGTH,
    TAG_LENGTH,
    CredentialsError,
    decrypt,
    decrypt_credentials,
    encrypt,
    encrypt_credentials,
    load_key,
)

KEY_HEX = "00112233445566778899aabbccddeeff" * 2


class CryptoTests(unittest.TestCase):
    def setUp(self):
        self.key = load_key(KEY_HEX)

    def test_round_trip(self):
        creds = {"access_token": "abc", "refresh_token": "def", "expires_in": 900}
        sealed = encrypt_credentials(creds, self.key)
        self.assertNotIn("abc", sealed)
        self.assertEqual(decrypt_credentials(sealed, self.key), creds)

    def test_packed_layout_and_random_iv(self):
        a = encrypt("hello", self.key)
        b = encrypt("hello", self.key)
        self.assertNotEqual(a, b)
        packed = base64.b64decode(a)
        self.assertEqual(len(packed), IV_LENGTH + TAG_LENGTH + len("hello"))

    def test_legacy_plain_json_is_accepted(self):
        legacy = json.dumps({"apiKey": "k", "apiSecret": "s"})
        self.assertEqual(decrypt_credentials(legacy, self.key), {"apiKey": "k", "apiSecret": "s"})

    def test_wrong_key_fails(self):
        sealed = encrypt("secret", self.key)
        other = load_key("ff" * 32)
        with self.assertRaises(CredentialsError):
            decrypt(sealed, other)

    def test_garbage_fails(self):
        with self.assertRaises(CredentialsError):
            decrypt("not-base64-and-not-json", self.key)

    def test_key_validation(self):
        with self.assertRaises(CredentialsError):
            load_key("")
        with self.assertRaises(CredentialsError):
            load_key("zz" * 32)
        with self.assertRaises(CredentialsError):
            load_key("00" * 16)


if __name__ == "__main__":
    unittest.main()
