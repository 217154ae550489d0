"""Service configuration.

Settings are read once at startup from an optional YAML file and then from the
environment, which wins. Every problem found is collected into a single
``ConfigError`` so a misconfigured deployment reports all of them at once.
"""
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import yaml


DEFAULT_CONFIG_PATH = "config/incidentq.yaml"

# levels understood by both logging and uvicorn
LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class ConfigError(Exception):
    def __init__(self, problems: List[str]) -> None:
        super().__init__("; ".join(problems))
        self.problems = problems


@dataclass(frozen=True)
class Settings:
    max_page_size: int
    db_host: str = ""
    db_port: int = 3306
    db_name: str = ""
    db_driver: str = "mysql+pymysql"
    secret_id: str = ""
    aws_region: Optional[str] = None
    # overrides host/port/name/secret when set, e.g. sqlite:///incidents.db
    database_url: Optional[str] = None
    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: List[str] = field(default_factory=list)
    log_level: str = "INFO"


# setting name -> environment variable
_ENV_KEYS = {
    "max_page_size": "MAX_PAGE_SIZE",
    "db_host": "DB_HOST",
    "db_port": "DB_PORT",
    "db_name": "DB_NAME",
    "db_driver": "DB_DRIVER",
    "secret_id": "SECRET",
    "aws_region": "AWS_REGION",
    "database_url": "DATABASE_URL",
    "host": "INCIDENTQ_HOST",
    "port": "INCIDENTQ_PORT",
    "cors_origins": "CORS_ORIGINS",
    "log_level": "LOG_LEVEL",
}


def _load_config(path: str, required: bool = False) -> Dict[str, Any]:
    if not os.path.exists(path):
        if required:
            raise ConfigError([f"config file {path} does not exist"])
        return {}
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigError([f"cannot read config file {path}: {e}"]) from e
    except yaml.YAMLError as e:
        raise ConfigError([f"invalid YAML in config file {path}: {e}"]) from e
    if not isinstance(data, dict):
        raise ConfigError([f"config file {path} must contain a mapping"])
    return data


def _positive_int(raw: Any) -> Optional[int]:
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        return None
    return value if value > 0 else None


def _port(raw: Any) -> Optional[int]:
    value = _positive_int(raw)
    if value is None or value > 65535:
        return None
    return value


def _origins(raw: Any) -> List[str]:
    if raw is None:
        return []
    if isinstance(raw, str):
        return [o.strip() for o in raw.split(",") if o.strip()]
    return [str(o) for o in raw]


def load_settings(environ: Optional[Mapping[str, str]] = None, path: Optional[str] = None) -> Settings:
    """Build validated ``Settings`` or raise ``ConfigError``.

    Args:
        environ: environment mapping, ``os.environ`` by default.
        path: YAML file; defaults to ``$INCIDENTQ_CONFIG`` or
            ``config/incidentq.yaml``. Only the default file may be missing.
    """
    if environ is None:
        environ = os.environ
    required = path is not None or bool(environ.get("INCIDENTQ_CONFIG"))
    if path is None:
        path = environ.get("INCIDENTQ_CONFIG") or DEFAULT_CONFIG_PATH

    raw: Dict[str, Any] = dict(_load_config(path, required))
    for name, env_key in _ENV_KEYS.items():
        if environ.get(env_key) not in (None, ""):
            raw[name] = environ[env_key]

    problems: List[str] = []

    max_page_size = _positive_int(raw.get("max_page_size"))
    if max_page_size is None:
        problems.append("invalid max page size number: %r" % (raw.get("max_page_size"),))

    db_port = _port(raw.get("db_port", Settings.db_port))
    if db_port is None:
        problems.append("invalid port number: %r" % (raw.get("db_port"),))

    port = _port(raw.get("port", Settings.port))
    if port is None:
        problems.append("invalid listen port: %r" % (raw.get("port"),))

    log_level = str(raw.get("log_level") or Settings.log_level).upper()
    if log_level not in LOG_LEVELS:
        problems.append("invalid log level: %r" % (raw.get("log_level"),))

    database_url = raw.get("database_url") or None
    if not database_url:
        for name in ("secret_id", "db_host", "db_name"):
            if not raw.get(name):
                problems.append("missing %s (%s)" % (name, _ENV_KEYS[name]))

    if problems:
        raise ConfigError(problems)

    return Settings(
        max_page_size=max_page_size,
        db_host=str(raw.get("db_host") or ""),
        db_port=db_port,
        db_name=str(raw.get("db_name") or ""),
        db_driver=str(raw.get("db_driver") or Settings.db_driver),
        secret_id=str(raw.get("secret_id") or ""),
        aws_region=raw.get("aws_region") or None,
        database_url=database_url,
        host=str(raw.get("host") or Settings.host),
        port=port,
        cors_origins=_origins(raw.get("cors_origins")),
        log_level=log_level,
    )


__all__ = ["Settings", "ConfigError", "load_settings", "DEFAULT_CONFIG_PATH"]
