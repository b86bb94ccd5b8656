import shutil
from pathlib import Path
import tempfile
import pytest


@pytest.fixture(scope="session", autouse=True)
def isolate_home_config():
    """Temporarily move any existing user-level commitsage config out of the way.

    Some tests expect no user-level config to exist. This fixture moves the
    file aside for the duration of the test session and restores it afterwards.
    """
    config_path = Path.home() / ".commitsage" / "config.json"
    backup_dir = None
    if config_path.exists():
        backup_dir = Path(tempfile.mkdtemp(prefix="commitsage_backup_"))
        shutil.move(str(config_path), str(backup_dir / "config.json"))

    try:
        yield
    finally:
        if backup_dir is not None:
            config_path.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(str(backup_dir / "config.json"), str(config_path))
            shutil.rmtree(str(backup_dir), ignore_errors=True)
