import unittest

from database import Base, SessionLocal, engine
from models.connection import UserConnection
from services.connection_service import ConnectionStore
from utils.crypto import CredentialsError, load_key

KEY = load_key("ab" * 32)


class ConnectionStoreTests(unittest.TestCase):
    def setUp(self):
        Base.metadata.create_all(bind=engine)
        self.db = SessionLocal()
        self.store = ConnectionStore(self.db, key=KEY)

    def tearDown(self):
        self.db.query(UserConnection).delete()
        self.db.commit()
        self.db.close()

    def test_save_encrypts_and_reads_back(self):
        self.store.save_credentials("u1", "binance", {"apiKey": "k", "apiSecret": "s"})
        row = self.store.get_connection("u1", "binance")
        self.assertNotIn("apiSecret", row.credentials)
        self.assertEqual(self.store.get_credentials("u1", "binance"), {"apiKey": "k", "apiSecret": "s"})

    def test_save_twice_updates_single_row(self):
        self.store.save_credentials("u1", "iol", {"access_token": "a"})
        self.store.save_credentials("u1", "iol", {"access_token": "b"})
        self.assertEqual(self.store.list_providers("u1"), ["iol"])
        self.assertEqual(self.store.get_credentials("u1", "iol"), {"access_token": "b"})

    def test_scoped_per_user(self):
        self.store.save_credentials("u1", "ppi", {"apiKey": "k"})
        self.assertIsNone(self.store.get_credentials("u2", "ppi"))
        self.assertEqual(self.store.list_providers("u2"), [])

    def test_delete(self):
        self.store.save_credentials("u1", "ppi", {"apiKey": "k"})
        self.assertTrue(self.store.delete("u1", "ppi"))
        self.assertFalse(self.store.delete("u1", "ppi"))

    def test_other_key_cannot_read(self):
        self.store.save_credentials("u1", "binance", {"apiKey": "k", "apiSecret": "s"})
        other = ConnectionStore(self.db, key=load_key("cd" * 32))
        with self.assertRaises(CredentialsError):
            other.get_credentials("u1", "binance")


if __name__ == "__main__":
    unittest.main()
