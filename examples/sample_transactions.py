from dotenv import load_dotenv

from boundquery import ConnectionConfig, ParamSpec, QueryExecutor, TransactionController, get_connection


def main():
    load_dotenv()

    manager = get_connection(ConnectionConfig.from_env())
    executor = QueryExecutor(manager)
    transactions = TransactionController(manager)

    executor.insert_or_update(
        "CREATE TABLE IF NOT EXISTS sample_accounts (id INT PRIMARY KEY, balance DOUBLE NOT NULL)"
    ).raise_for_error()
    executor.insert_or_update("DELETE FROM sample_accounts").raise_for_error()
    executor.insert_or_update(
        "INSERT INTO sample_accounts (id, balance) VALUES (?, ?), (?, ?)",
        ParamSpec.of("idid", 1, 100, 2, 0),
    ).raise_for_error()

    print(f"autocommit on: {transactions.is_autocommit_enabled()}")

    # Move funds atomically.
    transactions.set_autocommit(False)
    try:
        executor.insert_or_update(
            "UPDATE sample_accounts SET balance = balance - ? WHERE id = ?",
            ParamSpec.of("di", 25, 1),
        ).raise_for_error()
        executor.insert_or_update(
            "UPDATE sample_accounts SET balance = balance + ? WHERE id = ?",
            ParamSpec.of("di", 25, 2),
        ).raise_for_error()
        transactions.commit()
    except Exception:
        transactions.rollback()
        raise
    finally:
        transactions.set_autocommit(True)

    print(executor.fetch("SELECT id, balance FROM sample_accounts ORDER BY id").rows)

    executor.insert_or_update("DROP TABLE IF EXISTS sample_accounts")
    manager.close()


if __name__ == "__main__":
    main()
