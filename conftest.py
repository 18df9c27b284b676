import os
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from api import create_app
from book_info_service import BookInfoService
from library import AudiobookLibrary


@pytest.fixture
def book_info():
    # Stand-in for Open Library; tests set lookup.return_value / side_effect as needed
    service = MagicMock(spec=BookInfoService)
    service.lookup.return_value = None
    return service


@pytest.fixture
def db_file(tmp_path, request):
    # Unique database file per test
    return str(tmp_path / f"test_{request.node.name}.db")


@pytest.fixture
def lib(db_file, book_info):
    lib = AudiobookLibrary(db_file=db_file, book_info=book_info)
    yield lib
    try:
        lib.close()
    except Exception:
        pass
    if os.path.exists(db_file):
        os.remove(db_file)


@pytest.fixture
def client(lib):
    return TestClient(create_app(library=lib))
