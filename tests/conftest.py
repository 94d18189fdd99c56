import pytest

from src.serviceability.data.directory import load_directory


@pytest.fixture(autouse=True)
def clear_directory_cache():
    load_directory.cache_clear()
    yield
    load_directory.cache_clear()
