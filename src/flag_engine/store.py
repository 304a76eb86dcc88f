"""フラグストアのプロトコルとインメモリ実装"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol

from .exceptions import FeatureFlagError, FeatureFlagErrorCodes
from .models import Environment, FlagRecord


class FlagStoreProtocol(Protocol):
    """フラグレコードを提供する永続化層の読み取りプロトコル。"""

    async def get_flag(
        self, tenant_id: str, environment: Environment, key: str
    ) -> FlagRecord: ...

    async def list_flags(
        self, tenant_id: str, environment: Environment
    ) -> list[FlagRecord]: ...


class InMemoryFlagStore:
    """テスト用インメモリフラグストア。

    ``(tenant_id, environment, key)`` をキーに保持し、
    テナントや環境をまたいだ参照は行わない。
    """

    def __init__(self, records: Iterable[FlagRecord] = ()) -> None:
        self._flags: dict[tuple[str, Environment, str], FlagRecord] = {}
        for record in records:
            self.set_flag(record)

    def set_flag(self, record: FlagRecord) -> None:
        """フラグを設定する。"""
        self._flags[(record.tenant_id, record.environment, record.key)] = record

    def remove_flag(self, tenant_id: str, environment: Environment, key: str) -> bool:
        return self._flags.pop((tenant_id, environment, key), None) is not None

    async def get_flag(
        self, tenant_id: str, environment: Environment, key: str
    ) -> FlagRecord:
        record = self._flags.get((tenant_id, environment, key))
        if record is None:
            raise FeatureFlagError(
                FeatureFlagErrorCodes.FLAG_NOT_FOUND,
                f"flag not found: {key} (tenant={tenant_id}, environment={environment})",
            )
        return record

    async def list_flags(
        self, tenant_id: str, environment: Environment
    ) -> list[FlagRecord]:
        return sorted(
            (
                record
                for (tenant, env, _), record in self._flags.items()
                if tenant == tenant_id and env == environment
            ),
            key=lambda record: record.key,
        )
