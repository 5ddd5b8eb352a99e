import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

from tomte.host import HostContext
from tomte.plugins import PACKAGE_ROOT
from tests.addon_fixtures import RecordingClient


@pytest.fixture
def anyio_backend() -> str:
    # py-cord runs on asyncio only
    return "asyncio"


@pytest.fixture(autouse=True)
def _forget_imported_addons() -> Iterator[None]:
    yield
    for name in [n for n in sys.modules if n.split(".")[0] == PACKAGE_ROOT]:
        del sys.modules[name]


@pytest.fixture
def addons_root(tmp_path: Path) -> Path:
    root = tmp_path / "addons"
    root.mkdir()
    return root


@pytest.fixture
def host(addons_root: Path) -> HostContext:
    client = RecordingClient()
    context = HostContext(root=addons_root, client=client, timeout=2.0)
    client.host = context
    return context
