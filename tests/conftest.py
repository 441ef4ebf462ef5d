from __future__ import annotations

import pytest

from tests.helpers import make_group


@pytest.fixture
def group() -> dict[str, object]:
    return make_group()
