import importlib
import logging
import os

from boundquery.execution.connection import (
    DEFAULT_CA_CERT_PATH,
    DEFAULT_CLIENT_CERT_PATH,
    DEFAULT_SERVER_KEY_PATH,
    TlsSettings,
)
from boundquery.execution.errors import TLSConfigError, TLSError, TLSUnsupportedError
from boundquery.execution.manager import ConnectionManager

logger = logging.getLogger(__name__)

# ==================================================
# TLS Configuration
# ==================================================


class TLSConfigurator:
    """
    Upgrades the shared connection to an encrypted transport.

    TLS has to be enabled before the connection is opened, so obtain the
    manager with ``defer_connect=True``. Every failure raises a ``TLSError``;
    the caller decides whether the application can continue.
    """

    def __init__(self, manager: ConnectionManager) -> None:
        self.manager = manager

    def _check_ssl_module(self) -> None:
        # A server without TLS is only detected at connect time (errno 2026).
        try:
            importlib.import_module("ssl")
        except ImportError as exc:
            raise TLSUnsupportedError.from_message(
                operation="tls",
                message=f"This Python build has no ssl module: {exc}",
            ) from exc

    def _check_paths(self, settings: TlsSettings) -> None:
        for label, path in settings.paths().items():
            if not path:
                raise TLSConfigError.from_message(operation="tls", message=f"No {label} path given.")
            if not os.path.isfile(path):
                raise TLSConfigError.from_message(operation="tls", message=f"The {label} file {path!r} does not exist.")
            if not os.access(path, os.R_OK):
                raise TLSConfigError.from_message(operation="tls", message=f"The {label} file {path!r} is not readable.")

    def enable_tls(
        self,
        server_key_path: str = DEFAULT_SERVER_KEY_PATH,
        client_cert_path: str = DEFAULT_CLIENT_CERT_PATH,
        ca_cert_path: str = DEFAULT_CA_CERT_PATH,
    ) -> ConnectionManager:
        settings = TlsSettings(
            server_key_path=server_key_path,
            client_cert_path=client_cert_path,
            ca_cert_path=ca_cert_path,
        )
        manager = self.manager
        with manager.lock:
            try:
                if manager.is_open or manager.is_closed:
                    raise TLSConfigError.from_message(
                        operation="tls",
                        message="TLS must be enabled before the connection is opened.",
                    )
                self._check_ssl_module()
                self._check_paths(settings)

                manager.tls_settings = settings
                manager.open()
                if isinstance(manager.error, TLSError):
                    raise manager.error
            except TLSError as error:
                if manager.debug:
                    logger.error(
                        "Enabling TLS failed (server key: %s, client certificate: %s, CA bundle: %s): %s",
                        server_key_path,
                        client_cert_path,
                        ca_cert_path,
                        error,
                        exc_info=error,
                    )
                raise
        return manager
