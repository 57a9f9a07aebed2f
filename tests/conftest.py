from pathlib import Path

import pytest

from rate_relay.core.config import Settings
from rate_relay.models import RateRecord

from .fakes import UPSTREAM_URL, upstream_document


@pytest.fixture
def record() -> RateRecord:
    return RateRecord.model_validate(upstream_document()["USDBRL"])


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    s = Settings(
        data_dir=tmp_path,
        db_path=tmp_path / "rates.db",
        upstream_url=UPSTREAM_URL,
    )
    s.init_post_load()
    return s
