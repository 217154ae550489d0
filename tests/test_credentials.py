import json
import os
import unittest
from unittest import mock

from botocore.exceptions import ClientError, NoRegionError

from incidentq.config import Settings
from incidentq.credentials import (
    CredentialsError,
    DatabaseCredentials,
    database_url,
    fetch_credentials,
    parse_secret,
)


class StubSecrets:
    def __init__(self, secret_string=None, error=None):
        self.secret_string = secret_string
        self.error = error
        self.calls = []

    def get_secret_value(self, SecretId):
        self.calls.append(SecretId)
        if self.error is not None:
            raise self.error
        return {"Name": SecretId, "SecretString": self.secret_string}


class TestCredentials(unittest.TestCase):
    def test_parse_secret(self):
        creds = parse_secret(json.dumps({"DB_USER": "reader", "DB_PASSWORD": "s3cret"}))
        self.assertEqual(creds, DatabaseCredentials("reader", "s3cret"))

    def test_parse_secret_rejects_bad_documents(self):
        for raw in (None, "", "not json", "[]", json.dumps({"DB_USER": "reader"})):
            with self.subTest(raw=raw):
                with self.assertRaises(CredentialsError):
                    parse_secret(raw)

    def test_fetch_credentials(self):
        client = StubSecrets(json.dumps({"DB_USER": "reader", "DB_PASSWORD": "pw"}))
        creds = fetch_credentials("prod/incidentq/db", client=client)
        self.assertEqual(creds.user, "reader")
        self.assertEqual(client.calls, ["prod/incidentq/db"])

    def test_fetch_failure(self):
        error = ClientError({"Error": {"Code": "ResourceNotFoundException", "Message": "nope"}}, "GetSecretValue")
        with self.assertRaises(CredentialsError) as ctx:
            fetch_credentials("missing", client=StubSecrets(error=error))
        self.assertEqual(str(ctx.exception), "could not fetch database credentials")
        self.assertIs(ctx.exception.__cause__, error)

    def test_missing_region_is_a_credentials_error(self):
        env = {
            "AWS_CONFIG_FILE": "/nonexistent/aws-config",
            "AWS_SHARED_CREDENTIALS_FILE": "/nonexistent/aws-credentials",
            "AWS_EC2_METADATA_DISABLED": "true",
        }
        with mock.patch.dict(os.environ, env, clear=True):
            with self.assertRaises(CredentialsError) as ctx:
                fetch_credentials("prod/db")
        self.assertIsInstance(ctx.exception.__cause__, NoRegionError)

    def test_database_url(self):
        settings = Settings(max_page_size=10, db_host="db.internal", db_port=3307, db_name="incidents")
        url = database_url(settings, DatabaseCredentials("reader", "p@ss"))
        self.assertEqual(url.drivername, "mysql+pymysql")
        self.assertEqual(url.host, "db.internal")
        self.assertEqual(url.port, 3307)
        self.assertEqual(url.database, "incidents")
        self.assertEqual(url.password, "p@ss")
        self.assertEqual(url.query["charset"], "utf8mb4")


if __name__ == "__main__":
    unittest.main()
