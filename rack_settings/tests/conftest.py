from __future__ import annotations

from typing import Iterator

import pytest

from rack_settings.app import environment


@pytest.fixture(autouse=True)
def _reset_asset_roots() -> Iterator[None]:
    environment.reset()
    yield
    environment.reset()
