"""flag_engine テストの共通フィクスチャ"""

from __future__ import annotations

import pytest
from flag_engine import bucket


class CountingBucketer:
    """呼び出しを記録してから本物に委譲するバケッター。"""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []

    def __call__(self, subject_id: str, flag_key: str) -> int:
        self.calls.append((subject_id, flag_key))
        return bucket(subject_id, flag_key)


@pytest.fixture
def counting_bucketer() -> CountingBucketer:
    return CountingBucketer()

