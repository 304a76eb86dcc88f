"""フィーチャーフラグ評価: マスタースイッチ、ルールツリー走査、トレース"""

from __future__ import annotations

import logging
from collections.abc import Callable

from .bucketing import bucket
from .config import EngineConfig
from .exceptions import FeatureFlagError, FeatureFlagErrorCodes
from .limits import DEFAULT_MAX_DEPTH, DEFAULT_MAX_NODES, check_rule_budget
from .metrics import flag_evaluation_rejections_total, flag_evaluations_total
from .models import (
    AllowlistRule,
    AndRule,
    EvaluationContext,
    FlagRecord,
    OrRule,
    PercentageRule,
    RuleNode,
)
from .trace import Decision, RuleKind, TraceEntry, TraceOutcome

logger = logging.getLogger(__name__)

GLOBALLY_DISABLED = "flag globally disabled"
INVALID_PERCENTAGE = "invalid percentage rule"
INVALID_ALLOWLIST = "invalid allowlist rule"
INVALID_AND = "invalid AND rule"
INVALID_OR = "invalid OR rule"
UNKNOWN_RULE = "unknown rule type"

Bucketer = Callable[[str, str], int]


def _valid_threshold(threshold: object) -> bool:
    return (
        isinstance(threshold, int)
        and not isinstance(threshold, bool)
        and 0 <= threshold <= 100
    )


class Evaluator:
    """サブジェクトに対してフラグが有効かを判定する評価器。

    上限値以外の状態を持たないため、1 つのインスタンスを任意のスレッドから
    同時に利用できる。
    """

    def __init__(
        self,
        max_depth: int = DEFAULT_MAX_DEPTH,
        max_nodes: int = DEFAULT_MAX_NODES,
        enforce_environment: bool = False,
        bucketer: Bucketer = bucket,
    ) -> None:
        self._max_depth = max_depth
        self._max_nodes = max_nodes
        self._enforce_environment = enforce_environment
        self._bucketer = bucketer

    @classmethod
    def from_config(cls, config: EngineConfig, bucketer: Bucketer = bucket) -> Evaluator:
        return cls(
            max_depth=config.limits.max_depth,
            max_nodes=config.limits.max_nodes,
            enforce_environment=config.enforce_environment,
            bucketer=bucketer,
        )

    def evaluate(self, record: FlagRecord, context: EvaluationContext) -> Decision:
        """``context`` に対して ``record`` を評価する。

        無効化されたフラグはルールツリーを参照せずに OFF を返す。
        不正なルールは不一致として扱い、例外にはしない。
        例外になるのは環境の前提条件違反とツリーの上限超過のみ。

        Raises:
            FeatureFlagError: ENVIRONMENT_MISMATCH (``enforce_environment`` 有効時のみ)、
                RULE_TREE_TOO_DEEP、RULE_TREE_TOO_LARGE
        """
        fields = {
            "flag_key": record.key,
            "tenant_id": record.tenant_id,
            "environment": str(record.environment),
            "service": context.service,
        }
        if not record.enabled:
            decision = Decision(
                enabled=False,
                reason=GLOBALLY_DISABLED,
                trace=(TraceEntry(RuleKind.FLAG, TraceOutcome.DISABLED, GLOBALLY_DISABLED),),
            )
        else:
            try:
                self._check_environment(record, context)
                check_rule_budget(record.rule, self._max_depth, self._max_nodes)
            except FeatureFlagError as e:
                flag_evaluation_rejections_total.add(1, {"code": e.code})
                logger.warning(
                    "feature flag evaluation rejected",
                    extra={**fields, "code": e.code, "error": str(e)},
                )
                raise
            trace: list[TraceEntry] = []
            matched, reason = self._visit(record.rule, context, record.key, trace, 1)
            trace.append(
                TraceEntry(
                    RuleKind.FLAG,
                    TraceOutcome.MATCHED if matched else TraceOutcome.NOT_MATCHED,
                    reason,
                )
            )
            decision = Decision(enabled=matched, reason=reason, trace=tuple(trace))

        flag_evaluations_total.add(1, {"enabled": decision.enabled})
        logger.debug(
            "feature flag evaluated",
            extra={**fields, "enabled": decision.enabled, "reason": decision.reason},
        )
        return decision

    def evaluate_rule(
        self, rule: RuleNode, context: EvaluationContext, flag_key: str
    ) -> tuple[bool, str]:
        """ルールツリー単体を評価し ``(matched, explanation)`` を返す。

        Raises:
            FeatureFlagError: RULE_TREE_TOO_DEEP または RULE_TREE_TOO_LARGE
        """
        check_rule_budget(rule, self._max_depth, self._max_nodes)
        return self._visit(rule, context, flag_key, [], 0)

    def _check_environment(self, record: FlagRecord, context: EvaluationContext) -> None:
        if self._enforce_environment and context.environment != str(record.environment):
            raise FeatureFlagError(
                FeatureFlagErrorCodes.ENVIRONMENT_MISMATCH,
                f"flag '{record.key}' belongs to {record.environment}, "
                f"context is {context.environment}",
            )

    def _visit(
        self,
        rule: RuleNode,
        context: EvaluationContext,
        flag_key: str,
        trace: list[TraceEntry],
        depth: int,
    ) -> tuple[bool, str]:
        if isinstance(rule, PercentageRule):
            return self._percentage(rule, context, flag_key, trace, depth)
        if isinstance(rule, AllowlistRule):
            return self._allowlist(rule, context, trace, depth)
        if isinstance(rule, AndRule):
            return self._and(rule, context, flag_key, trace, depth)
        if isinstance(rule, OrRule):
            return self._or(rule, context, flag_key, trace, depth)
        trace.append(TraceEntry(RuleKind.UNKNOWN, TraceOutcome.INVALID, UNKNOWN_RULE, depth))
        return False, UNKNOWN_RULE

    def _percentage(
        self,
        rule: PercentageRule,
        context: EvaluationContext,
        flag_key: str,
        trace: list[TraceEntry],
        depth: int,
    ) -> tuple[bool, str]:
        if not _valid_threshold(rule.threshold):
            trace.append(
                TraceEntry(RuleKind.PERCENTAGE, TraceOutcome.INVALID, INVALID_PERCENTAGE, depth)
            )
            return False, INVALID_PERCENTAGE
        threshold = rule.threshold
        value = self._bucketer(context.subject_id, flag_key)
        matched = value < threshold
        reason = f"subject bucket {value} {'<' if matched else '>='} {threshold}%"
        trace.append(
            TraceEntry(
                RuleKind.PERCENTAGE,
                TraceOutcome.MATCHED if matched else TraceOutcome.NOT_MATCHED,
                reason,
                depth,
                bucket=value,
                threshold=threshold,
            )
        )
        return matched, reason

    def _allowlist(
        self,
        rule: AllowlistRule,
        context: EvaluationContext,
        trace: list[TraceEntry],
        depth: int,
    ) -> tuple[bool, str]:
        if not rule.subjects:
            trace.append(
                TraceEntry(RuleKind.ALLOWLIST, TraceOutcome.INVALID, INVALID_ALLOWLIST, depth)
            )
            return False, INVALID_ALLOWLIST
        matched = context.subject_id in rule.subjects
        reason = "subject in allowlist" if matched else "subject not in allowlist"
        trace.append(
            TraceEntry(
                RuleKind.ALLOWLIST,
                TraceOutcome.MATCHED if matched else TraceOutcome.NOT_MATCHED,
                reason,
                depth,
                subject_in_list=matched,
            )
        )
        return matched, reason

    def _and(
        self,
        rule: AndRule,
        context: EvaluationContext,
        flag_key: str,
        trace: list[TraceEntry],
        depth: int,
    ) -> tuple[bool, str]:
        if not rule.children:
            trace.append(TraceEntry(RuleKind.AND, TraceOutcome.INVALID, INVALID_AND, depth))
            return False, INVALID_AND
        for index, child in enumerate(rule.children):
            matched, child_reason = self._visit(child, context, flag_key, trace, depth + 1)
            if not matched:
                reason = f"AND failed at rule {index}: {child_reason}"
                trace.append(
                    TraceEntry(
                        RuleKind.AND, TraceOutcome.NOT_MATCHED, reason, depth, child_index=index
                    )
                )
                return False, reason
        reason = "all AND conditions met"
        trace.append(TraceEntry(RuleKind.AND, TraceOutcome.MATCHED, reason, depth))
        return True, reason

    def _or(
        self,
        rule: OrRule,
        context: EvaluationContext,
        flag_key: str,
        trace: list[TraceEntry],
        depth: int,
    ) -> tuple[bool, str]:
        if not rule.children:
            trace.append(TraceEntry(RuleKind.OR, TraceOutcome.INVALID, INVALID_OR, depth))
            return False, INVALID_OR
        for index, child in enumerate(rule.children):
            matched, child_reason = self._visit(child, context, flag_key, trace, depth + 1)
            if matched:
                reason = f"OR matched at rule {index}: {child_reason}"
                trace.append(
                    TraceEntry(RuleKind.OR, TraceOutcome.MATCHED, reason, depth, child_index=index)
                )
                return True, reason
        reason = "no OR conditions met"
        trace.append(TraceEntry(RuleKind.OR, TraceOutcome.NOT_MATCHED, reason, depth))
        return False, reason


_default_evaluator = Evaluator()


def evaluate(record: FlagRecord, context: EvaluationContext) -> Decision:
    """デフォルトの上限値で評価する。"""
    return _default_evaluator.evaluate(record, context)
