"""Database credentials from AWS Secrets Manager.

The secret is a JSON document ``{"DB_USER": ..., "DB_PASSWORD": ...}``.
"""
import json
import logging
from typing import Any, NamedTuple, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from sqlalchemy.engine import URL

from .config import Settings

logger = logging.getLogger("incidentq.credentials")


class CredentialsError(Exception):
    pass


class DatabaseCredentials(NamedTuple):
    user: str
    password: str


def parse_secret(secret_string: Optional[str]) -> DatabaseCredentials:
    try:
        data = json.loads(secret_string or "")
        return DatabaseCredentials(user=data["DB_USER"], password=data["DB_PASSWORD"])
    except (ValueError, TypeError, KeyError) as e:
        raise CredentialsError("could not parse secret") from e


def fetch_credentials(secret_id: str, client: Any = None, region_name: Optional[str] = None) -> DatabaseCredentials:
    """Fetch and parse the secret ``secret_id``.

    ``client`` is anything with boto3's ``get_secret_value``; a
    ``secretsmanager`` client is created when omitted.
    """
    try:
        if client is None:
            client = boto3.client("secretsmanager", region_name=region_name)
        response = client.get_secret_value(SecretId=secret_id)
    except (BotoCoreError, ClientError) as e:
        raise CredentialsError("could not fetch database credentials") from e
    logger.info("Fetched database credentials from secret %s", secret_id)
    return parse_secret(response.get("SecretString"))


def database_url(settings: Settings, credentials: DatabaseCredentials) -> URL:
    query = {"charset": "utf8mb4"} if settings.db_driver.startswith("mysql") else {}
    return URL.create(
        settings.db_driver,
        username=credentials.user,
        password=credentials.password,
        host=settings.db_host,
        port=settings.db_port,
        database=settings.db_name,
        query=query,
    )


__all__ = ["CredentialsError", "DatabaseCredentials", "parse_secret", "fetch_credentials", "database_url"]
