# Shared pytest fixtures
from __future__ import annotations
import tempfile
from pathlib import Path

import pytest

from contact_distributor.logging.init import reset_logging
from contact_distributor.models.distribution import DistributionTarget


@pytest.fixture(autouse=True)
def _fresh_logging():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """source_directory: ./data
log_directory: ./logs
roster:
  - {id: a1, name: Asha}
  - {id: a2, name: Bilal}
  - {id: a3, name: Chen}
  - {id: a4, name: Dana}
  - {id: a5, name: Emeka}
  - {id: a6, name: Farah, active: false}
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: appdb
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "distribute.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def roster() -> list[DistributionTarget]:
    return [DistributionTarget(target_id=f"a{i}", display_name=f"Agent {i}") for i in range(1, 6)]
