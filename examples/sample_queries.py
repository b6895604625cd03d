from dotenv import load_dotenv

from boundquery import ConnectionConfig, ParamSpec, QueryExecutor, get_connection


def main():
    # Load environment variables from .env file
    load_dotenv()

    # MYSQL_HOST, MYSQL_PORT, MYSQL_USER, MYSQL_PASSWORD and MYSQL_DB
    manager = get_connection(ConnectionConfig.from_env(), debug=True)
    if manager.error is not None:
        print(f"Could not connect: {manager.error}")
        return

    executor = QueryExecutor(manager)

    print("Creating table 'sample_users'...")
    executor.insert_or_update(
        "CREATE TABLE IF NOT EXISTS sample_users ("
        "id INT PRIMARY KEY, name VARCHAR(255) NOT NULL, balance DOUBLE, avatar BLOB)"
    ).raise_for_error()

    print("Inserting sample data...")
    users_data = [
        ParamSpec.of("isdb", 1, "Alice", 50.434, b"\x02\xfc"),
        ParamSpec.of("isdb", 2, "Bob", 12.5, None),
        # Legacy flat form: type tags first, then the values.
        ["isdb", 3, "McLovin", 0.0, None],
    ]
    for params in users_data:
        outcome = executor.insert_or_update(
            "INSERT INTO sample_users (id, name, balance, avatar) VALUES (?, ?, ?, ?)",
            params,
        )
        print(f"rows_affected={outcome.rows_affected} error={outcome.error_message}")

    print("Selecting users with a balance above 10...")
    outcome = executor.fetch(
        "SELECT id, name, balance FROM sample_users WHERE balance > ? ORDER BY id",
        ParamSpec.of("d", 10),
    )
    for row in outcome.rows:
        print(f"ID: {row['id']}, Name: {row['name']}, Balance: {row['balance']}")

    print("A statement with the wrong number of values is reported, not raised:")
    outcome = executor.insert_or_update(
        "INSERT INTO sample_users (id, name) VALUES (?, ?)",
        ParamSpec.of("is", 4),
    )
    print(f"{type(outcome.error).__name__}: {outcome.error}")

    print("Dropping table 'sample_users'...")
    executor.insert_or_update("DROP TABLE IF EXISTS sample_users")
    manager.close()


if __name__ == "__main__":
    main()
