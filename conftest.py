import pytest

from coauthor.storage import Storage


@pytest.fixture
def storage(tmp_path) -> Storage:
    """Fresh JSON storage under tmp_path, with no simulated login delay."""
    return Storage(tmp_path, login_delay=0)
