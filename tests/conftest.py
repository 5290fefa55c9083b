from __future__ import annotations

import pytest

from cmdreply.process import queue as queue_module


@pytest.fixture(autouse=True)
def _fresh_default_queue(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(queue_module, "_default_queue", None)
