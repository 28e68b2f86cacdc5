import tempfile
import shutil
from pathlib import Path

import sys

# Allow running tests without installing the package.
sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

import pytest
from assetsync.core.runtime.settings import Settings


@pytest.fixture()
def temp_dir():
    d = Path(tempfile.mkdtemp(prefix="assetsync_test_"))
    try:
        yield d
    finally:
        shutil.rmtree(d, ignore_errors=True)


@pytest.fixture()
def settings(temp_dir):
    return Settings(
        store_root=str(temp_dir / "assets"),
        resources_root=str(temp_dir / "resources"),
        workers=2,
        copy_workers=1,
        fetch_retries=1,
        retry_backoff=0,
        log_level="INFO",
    )
