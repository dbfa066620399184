# SPDX-License-Identifier: AGPL-3.0-or-later
import os

import pytest

from glance.cancellation import CancellationToken
from glance.settings import SummarySettings, reset_settings_cache


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch) -> None:
    for key in list(os.environ):
        if key.startswith("GLANCE_"):
            monkeypatch.delenv(key)
    reset_settings_cache()
    yield
    reset_settings_cache()


@pytest.fixture
def settings() -> SummarySettings:
    return SummarySettings()


@pytest.fixture
def token() -> CancellationToken:
    return CancellationToken()
