from unittest.mock import MagicMock, patch

import pytest

from boundquery.execution.connection import ConnectionConfig
from boundquery.execution.manager import ConnectionManager


@pytest.fixture(autouse=True)
def reset_connection_manager():
    ConnectionManager.reset_instance()
    yield
    ConnectionManager.reset_instance()


@pytest.fixture
def mock_mysql_connector():
    with patch("boundquery.execution.manager.ConnectionManager._get_mysql_connector") as mock:
        mock_module = MagicMock()
        mock.return_value = mock_module
        yield mock_module


@pytest.fixture
def config() -> ConnectionConfig:
    return ConnectionConfig(host="db.internal", user="app", password="secret", database="shop")


@pytest.fixture
def manager(mock_mysql_connector, config) -> ConnectionManager:
    return ConnectionManager.get_instance(config)
