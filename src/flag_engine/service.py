"""フラグストアから取得して評価するサービス"""

from __future__ import annotations

from .evaluator import Evaluator
from .models import Environment, EvaluationContext
from .store import FlagStoreProtocol
from .trace import Decision


class FlagEvaluationService:
    """テナントと環境のスコープでフラグを取得し評価する。"""

    def __init__(self, store: FlagStoreProtocol, evaluator: Evaluator | None = None) -> None:
        self._store = store
        self._evaluator = evaluator or Evaluator()

    async def evaluate(
        self,
        tenant_id: str,
        environment: Environment,
        flag_key: str,
        context: EvaluationContext,
    ) -> Decision:
        """フラグを 1 件評価する。

        Raises:
            FeatureFlagError: ストア由来の FLAG_NOT_FOUND、
                または評価器の前提条件違反
        """
        record = await self._store.get_flag(tenant_id, environment, flag_key)
        return self._evaluator.evaluate(record, context)

    async def is_enabled(
        self,
        tenant_id: str,
        environment: Environment,
        flag_key: str,
        context: EvaluationContext,
    ) -> bool:
        decision = await self.evaluate(tenant_id, environment, flag_key, context)
        return decision.enabled

    async def evaluate_all(
        self,
        tenant_id: str,
        environment: Environment,
        context: EvaluationContext,
    ) -> dict[str, Decision]:
        """スコープ内の全フラグをキー順に評価する。"""
        records = await self._store.list_flags(tenant_id, environment)
        return {record.key: self._evaluator.evaluate(record, context) for record in records}
