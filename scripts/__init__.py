import os
import shutil
import subprocess
import sys
import time

UNIT_TESTS = "boundquery/tests"
INTEGRATION_TESTS = "tests"
MYSQL_SERVICE = "mysql"
BUILD_LEFTOVERS = ("venv", ".pytest_cache", "dist")


def _pytest(*targets: str) -> None:
    result = subprocess.run([sys.executable, "-m", "pytest", *targets], check=False)
    sys.exit(result.returncode)


def run_unit_tests():
    """Run the mocked-driver unit tests in boundquery/tests."""
    print("Running unit tests...")
    _pytest(UNIT_TESTS)


def run_integration_tests():
    """Run the live MySQL tests in tests/ against MYSQL_DATABASE_URL."""
    target = os.getenv("MYSQL_DATABASE_URL", "the docker-compose MySQL service")
    print(f"Running integration tests against {target}...")
    # Skipped by the suite itself when the MySQL server is unreachable
    _pytest(INTEGRATION_TESTS)


def run_all_tests():
    """Run unit and integration tests in one session."""
    print("Running all tests...")
    _pytest(UNIT_TESTS, INTEGRATION_TESTS)


def _cache_dirs(root: str = "."):
    for dirpath, dirnames, _ in os.walk(root):
        if "__pycache__" in dirnames:
            yield os.path.join(dirpath, "__pycache__")


def clean_project():
    """Remove the virtualenv, build output, and every pytest or bytecode cache."""
    print("Cleaning up project...")
    for folder in sorted({*BUILD_LEFTOVERS, *_cache_dirs()}):
        # Caches inside venv are gone once venv itself is removed
        if not os.path.exists(folder):
            continue
        try:
            shutil.rmtree(folder)
            print(f"Removed: {folder}")
        except OSError as exc:
            print(f"Failed to remove {folder}: {exc}")

    print("Cleanup complete.")


def _mysql_ready() -> bool:
    # TCP ping fails while the image still runs its networkless init server
    ping = subprocess.run(
        ["docker-compose", "exec", "-T", MYSQL_SERVICE, "mysqladmin", "ping", "-h", "127.0.0.1", "--silent"],
        check=False,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
    )
    return ping.returncode == 0


def setup_tests(wait_seconds: int = 60):
    """Start the MySQL container and wait until it accepts connections."""
    print("Starting the MySQL service for integration tests...")
    docker_result = subprocess.run(["docker-compose", "up", "-d", MYSQL_SERVICE], check=False)
    if docker_result.returncode != 0:
        sys.exit(docker_result.returncode)

    print("Waiting for MySQL to accept connections...")
    deadline = time.monotonic() + wait_seconds
    while not _mysql_ready():
        if time.monotonic() >= deadline:
            print(f"MySQL was not ready after {wait_seconds}s.")
            sys.exit(1)
        time.sleep(2)

    print("Test setup complete.")
