from __future__ import annotations

from pathlib import Path

import pytest

from tests._fixtures.modules_builder import ModulesBuilder, RecordingRenderer


@pytest.fixture
def modules_builder(tmp_path: Path) -> ModulesBuilder:
    """Provide a reusable modules tree rooted at the pytest tmp_path."""
    return ModulesBuilder(tmp_path)


@pytest.fixture
def recording_renderer() -> RecordingRenderer:
    return RecordingRenderer()
