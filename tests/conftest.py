from __future__ import annotations

from dataclasses import replace
from pathlib import Path
import sys


import pytest


# Ensure the repository root (parent of ./tests) is importable during pytest collection.
# This avoids ModuleNotFoundError for imports like `import persistence...` under pytest import modes
# that don't automatically prepend the cwd/rootdir to sys.path.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


@pytest.fixture
def base_settings(tmp_path: Path):
    """
    Settings pointing every medium at a temp directory so tests never touch real ./data.
    """
    from settings import get_settings

    return replace(
        get_settings(),
        storage_backend="flatfile",
        data_file=tmp_path / "data.json",
        database_url=f"sqlite:///{tmp_path / 'store.db'}",
        public_dir=tmp_path / "public",
        backend_timeout_seconds=5.0,
    )


@pytest.fixture(params=["flatfile", "relational"])
def settings(request: pytest.FixtureRequest, base_settings):
    return replace(base_settings, storage_backend=request.param)


@pytest.fixture
def backend(settings):
    """An initialized ThreadedStorageBackend for each storage variant."""
    import asyncio

    from persistence import create_backend

    b = create_backend(settings)
    asyncio.run(b.initialize())
    yield b
    asyncio.run(b.close())


@pytest.fixture
def client(settings):
    from fastapi.testclient import TestClient

    import app as app_module

    with TestClient(app_module.create_app(settings)) as c:
        yield c
