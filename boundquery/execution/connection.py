from __future__ import annotations

from dataclasses import dataclass, field
import os
from typing import Any, Mapping
from urllib.parse import unquote, urlparse

# ==================================================
# Connection Configuration Types
# ==================================================

DEFAULT_HOST = "localhost"
DEFAULT_USER = "root"
DEFAULT_PASSWORD = ""
DEFAULT_DATABASE = ""
DEFAULT_PORT = 3306

# Session options applied on every connect.
SESSION_AUTOCOMMIT = True
CONNECT_TIMEOUT_SECONDS = 5

DEFAULT_SERVER_KEY_PATH = "/etc/apache2/ssl-keys/server.key"
DEFAULT_CLIENT_CERT_PATH = "/etc/apache2/ssl-keys/domain.crt"
DEFAULT_CA_CERT_PATH = "/etc/apache2/ssl-keys/cabundle.crt"


@dataclass(frozen=True)
class ConnectionConfig:
    """
    Host, credentials and database name for the shared MySQL session.
    Empty fields fall back to the module defaults when resolved.
    """

    host: str = ""
    user: str = ""
    password: str = field(default="", repr=False)
    database: str = ""
    port: int | None = None

    def resolved(self) -> "ConnectionConfig":
        return ConnectionConfig(
            host=self.host or DEFAULT_HOST,
            user=self.user or DEFAULT_USER,
            password=self.password or DEFAULT_PASSWORD,
            database=self.database or DEFAULT_DATABASE,
            port=self.port or DEFAULT_PORT,
        )

    def to_connect_kwargs(self) -> dict[str, Any]:
        config = self.resolved()
        kwargs: dict[str, Any] = {
            "host": config.host,
            "port": config.port,
            "user": config.user,
            "password": config.password,
        }
        if config.database:
            kwargs["database"] = config.database
        return kwargs

    @classmethod
    def from_url(cls, url: str) -> "ConnectionConfig":
        parsed = urlparse(url)
        if parsed.scheme not in {"mysql"}:
            raise ValueError("MySQL connection string must start with mysql://")

        return cls(
            host=parsed.hostname or "",
            user=unquote(parsed.username) if parsed.username else "",
            password=unquote(parsed.password) if parsed.password else "",
            database=parsed.path.lstrip("/") if parsed.path else "",
            port=parsed.port,
        )

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "ConnectionConfig":
        port = values.get("port")
        return cls(
            host=str(values.get("host") or ""),
            user=str(values.get("user") or ""),
            password=str(values.get("password") or values.get("pass") or ""),
            database=str(values.get("database") or values.get("dbName") or ""),
            port=int(port) if port else None,
        )

    @classmethod
    def from_env(cls, prefix: str = "MYSQL_") -> "ConnectionConfig":
        port = os.getenv(f"{prefix}PORT")
        return cls(
            host=os.getenv(f"{prefix}HOST", ""),
            user=os.getenv(f"{prefix}USER", ""),
            password=os.getenv(f"{prefix}PASSWORD", ""),
            database=os.getenv(f"{prefix}DB", ""),
            port=int(port) if port else None,
        )


@dataclass(frozen=True)
class TlsSettings:
    """
    File paths for the TLS handshake. No cipher or protocol selection.
    """

    server_key_path: str = DEFAULT_SERVER_KEY_PATH
    client_cert_path: str = DEFAULT_CLIENT_CERT_PATH
    ca_cert_path: str = DEFAULT_CA_CERT_PATH

    def paths(self) -> dict[str, str]:
        return {
            "server key": self.server_key_path,
            "client certificate": self.client_cert_path,
            "CA bundle": self.ca_cert_path,
        }

    def to_connect_kwargs(self) -> dict[str, Any]:
        return {
            "ssl_key": self.server_key_path,
            "ssl_cert": self.client_cert_path,
            "ssl_ca": self.ca_cert_path,
            "ssl_verify_cert": True,
        }
