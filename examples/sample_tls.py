import os

from dotenv import load_dotenv

from boundquery import ConnectionConfig, QueryExecutor, TLSConfigError, TLSConfigurator, get_connection
from boundquery.execution.errors import TLSError


def main():
    load_dotenv()

    # TLS must be set up before the first connect, so defer it.
    manager = get_connection(ConnectionConfig.from_env(), debug=True, defer_connect=True)

    try:
        TLSConfigurator(manager).enable_tls(
            server_key_path=os.getenv("MYSQL_SSL_KEY", "/etc/apache2/ssl-keys/server.key"),
            client_cert_path=os.getenv("MYSQL_SSL_CERT", "/etc/apache2/ssl-keys/domain.crt"),
            ca_cert_path=os.getenv("MYSQL_SSL_CA", "/etc/apache2/ssl-keys/cabundle.crt"),
        )
    except TLSConfigError as exc:
        print(f"TLS configuration rejected: {exc}")
        return
    except TLSError as exc:
        print(f"TLS unavailable: {exc}")
        return

    outcome = QueryExecutor(manager).fetch("SHOW SESSION STATUS LIKE 'Ssl_cipher'")
    print(outcome.rows)
    manager.close()


if __name__ == "__main__":
    main()
