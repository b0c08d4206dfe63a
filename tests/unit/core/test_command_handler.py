import pytest
from unittest.mock import MagicMock

from kvcache.core.command_handler import CommandHandler
from kvcache.domain.interfaces.cache import Cache
from kvcache.domain.interfaces.user_interface import UserInterface
from kvcache.domain.models.common import MISS
from kvcache.infrastructure.cache.file_cache import FileCache


@pytest.fixture
def mock_cache():
    return MagicMock(spec=Cache)


@pytest.fixture
def mock_ui():
    return MagicMock(spec=UserInterface)


@pytest.fixture
def command_handler(mock_cache, mock_ui):
    """Fixture to create CommandHandler with a mocked cache and UI."""
    return CommandHandler(cache=mock_cache, ui=mock_ui)


def test_handle_key_prints_normalized_key(command_handler: CommandHandler, mock_cache: MagicMock, mock_ui: MagicMock):
    mock_cache.build_key.return_value = "abc123"
    assert command_handler.handle_key("user:1") is True
    mock_cache.build_key.assert_called_once_with("user:1")
    mock_ui.display_output.assert_called_once_with("abc123")


def test_handle_get_hit(command_handler: CommandHandler, mock_cache: MagicMock, mock_ui: MagicMock):
    mock_cache.get.return_value = {"a": 1}
    assert command_handler.handle_get("k") is True
    mock_ui.display_value.assert_called_once_with({"a": 1})


def test_handle_get_falsy_hit(command_handler: CommandHandler, mock_cache: MagicMock, mock_ui: MagicMock):
    """A stored falsy value is a hit, not a miss."""
    mock_cache.get.return_value = False
    assert command_handler.handle_get("k") is True
    mock_ui.display_value.assert_called_once_with(False)


def test_handle_get_miss(command_handler: CommandHandler, mock_cache: MagicMock, mock_ui: MagicMock):
    mock_cache.get.return_value = MISS
    assert command_handler.handle_get("k") is False
    mock_ui.display_warning.assert_called_once_with("Cache miss: k")
    mock_ui.display_value.assert_not_called()


def test_handle_set_stores_string(command_handler: CommandHandler, mock_cache: MagicMock, mock_ui: MagicMock):
    mock_cache.set.return_value = True
    assert command_handler.handle_set("k", "v", ttl=30) is True
    mock_cache.set.assert_called_once_with("k", "v", 30)
    mock_ui.display_info.assert_called_once_with("Stored 'k'.")


def test_handle_set_parses_json(command_handler: CommandHandler, mock_cache: MagicMock):
    mock_cache.set.return_value = True
    command_handler.handle_set("k", '{"a": [1, 2]}', as_json=True)
    mock_cache.set.assert_called_once_with("k", {"a": [1, 2]}, 0)


def test_handle_set_invalid_json(command_handler: CommandHandler, mock_cache: MagicMock, mock_ui: MagicMock):
    assert command_handler.handle_set("k", "{not json", as_json=True) is False
    mock_cache.set.assert_not_called()
    mock_ui.display_error.assert_called_once()


def test_handle_set_failure(command_handler: CommandHandler, mock_cache: MagicMock, mock_ui: MagicMock):
    mock_cache.set.return_value = False
    assert command_handler.handle_set("k", "v") is False
    mock_ui.display_error.assert_called_once_with("Failed to store key 'k'.")


def test_handle_add_existing_key(command_handler: CommandHandler, mock_cache: MagicMock, mock_ui: MagicMock):
    mock_cache.add.return_value = False
    assert command_handler.handle_add("k", "v", ttl=10) is False
    mock_cache.add.assert_called_once_with("k", "v", 10)
    mock_ui.display_error.assert_called_once()


def test_handle_exists(command_handler: CommandHandler, mock_cache: MagicMock, mock_ui: MagicMock):
    mock_cache.exists.return_value = True
    assert command_handler.handle_exists("k") is True
    mock_ui.display_output.assert_called_once_with("yes")


def test_handle_delete_absent(command_handler: CommandHandler, mock_cache: MagicMock, mock_ui: MagicMock):
    mock_cache.delete.return_value = False
    assert command_handler.handle_delete("k") is False
    mock_ui.display_warning.assert_called_once_with("Nothing deleted for key 'k'.")


def test_handle_flush(command_handler: CommandHandler, mock_cache: MagicMock, mock_ui: MagicMock):
    mock_cache.flush.return_value = True
    assert command_handler.handle_flush() is True
    mock_ui.display_info.assert_called_once_with("Cache flushed.")


def test_handle_flush_failure(command_handler: CommandHandler, mock_cache: MagicMock, mock_ui: MagicMock):
    mock_cache.flush.return_value = False
    assert command_handler.handle_flush() is False
    mock_ui.display_error.assert_called_once()


def test_handle_gc_unsupported_backend(command_handler: CommandHandler, mock_ui: MagicMock):
    """The Cache contract has no gc(); only backends that offer it can collect."""
    assert command_handler.handle_gc() is False
    mock_ui.display_error.assert_called_once()


def test_handle_gc_file_cache(mock_ui: MagicMock):
    cache = MagicMock(spec=FileCache)
    cache.gc.return_value = 3
    handler = CommandHandler(cache=cache, ui=mock_ui)
    assert handler.handle_gc(expired_only=False) is True
    cache.gc.assert_called_once_with(expired_only=False)
    mock_ui.display_info.assert_called_once_with("Removed 3 cache files.")
