from __future__ import annotations

import pytest

from fakes import Env, build_env


@pytest.fixture
def env() -> Env:
    return build_env()
