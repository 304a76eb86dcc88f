"""パーセンテージロールアウト用の安定バケット化"""

from __future__ import annotations

import hashlib

BUCKET_COUNT = 100


def bucket(subject_id: str, flag_key: str) -> int:
    """``(subject_id, flag_key)`` を ``[0, 100)`` の安定した整数に写像する。

    ``sha256("<subject_id>:<flag_key>")`` の先頭 32 ビットを 100 で割った余り。
    既存のロールアウトがこの写像に依存しているため変更してはならない。
    """
    digest = hashlib.sha256(f"{subject_id}:{flag_key}".encode("utf-8")).hexdigest()
    return int(digest[:8], 16) % BUCKET_COUNT
