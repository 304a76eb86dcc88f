"""永続化フラグ、評価リクエスト、評価結果のワイヤ形式

ルールツリーは判別子付きの JSON オブジェクトとして保存される::

    {"type": "percentage", "value": 25}
    {"type": "allowlist", "userIds": ["alice", "bob"]}
    {"type": "and", "rules": [...]}
    {"type": "or", "rules": [...]}

ルールの解析は寛容に行う。型不正や欠落したフィールドは「欠落」として保持し、
フラグ全体を拒否せず評価時にそのノードだけを不一致にする。
レコード本体とコンテキストは厳格に解析する。
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .exceptions import FeatureFlagError, FeatureFlagErrorCodes
from .limits import DEFAULT_MAX_DEPTH
from .models import (
    AllowlistRule,
    AndRule,
    Environment,
    EvaluationContext,
    FlagRecord,
    OrRule,
    PercentageRule,
    RuleNode,
    UnknownRule,
)
from .trace import Decision

_COMPOSITE_TYPES = ("and", "or")


def _child_payloads(raw: Any) -> list[Any]:
    if not isinstance(raw, Mapping) or raw.get("type") not in _COMPOSITE_TYPES:
        return []
    rules = raw.get("rules")
    if not isinstance(rules, (list, tuple)):
        return []
    return list(rules)


def _build(raw: Any, children: tuple[RuleNode, ...]) -> RuleNode:
    if not isinstance(raw, Mapping):
        return UnknownRule()
    rule_type = raw.get("type")
    if rule_type == "percentage":
        value = raw.get("value")
        if isinstance(value, int) and not isinstance(value, bool):
            return PercentageRule(threshold=value)
        return PercentageRule(threshold=None)
    if rule_type == "allowlist":
        user_ids = raw.get("userIds")
        if isinstance(user_ids, (list, tuple)):
            return AllowlistRule(subjects=frozenset(u for u in user_ids if isinstance(u, str)))
        return AllowlistRule(subjects=None)
    if rule_type == "and":
        return AndRule(children=children)
    if rule_type == "or":
        return OrRule(children=children)
    return UnknownRule(type=rule_type if isinstance(rule_type, str) else None)


def parse_rule(data: Any, max_depth: int = DEFAULT_MAX_DEPTH) -> RuleNode:
    """永続化されたルールツリーを再帰せずに解析する。

    Raises:
        FeatureFlagError: ネストが ``max_depth`` を超えた場合 RULE_TREE_TOO_DEEP
    """
    # 前順で各ペイロードと子の位置を記録する。子は常に親より後ろに並ぶため、
    # 末尾から組み立てれば親より先に子が揃う。
    payloads: list[Any] = []
    child_slots: list[list[int]] = []
    stack: list[tuple[Any, int, int]] = [(data, 1, -1)]
    while stack:
        raw, depth, parent = stack.pop()
        if depth > max_depth:
            raise FeatureFlagError(
                FeatureFlagErrorCodes.RULE_TREE_TOO_DEEP,
                f"rule tree too deep: exceeds {max_depth} levels",
            )
        index = len(payloads)
        payloads.append(raw)
        child_slots.append([])
        if parent >= 0:
            child_slots[parent].append(index)
        for child in reversed(_child_payloads(raw)):
            stack.append((child, depth + 1, index))

    built: list[RuleNode] = [UnknownRule()] * len(payloads)
    for index in range(len(payloads) - 1, -1, -1):
        children = tuple(built[slot] for slot in child_slots[index])
        built[index] = _build(payloads[index], children)
    return built[0]


def dump_rule(rule: RuleNode) -> dict[str, Any]:
    """ルールツリーをワイヤ形式に変換する。許可リストはソートする。"""
    if isinstance(rule, PercentageRule):
        data: dict[str, Any] = {"type": "percentage"}
        if rule.threshold is not None:
            data["value"] = rule.threshold
        return data
    if isinstance(rule, AllowlistRule):
        data = {"type": "allowlist"}
        if rule.subjects is not None:
            data["userIds"] = sorted(rule.subjects)
        return data
    if isinstance(rule, AndRule):
        return {"type": "and", "rules": [dump_rule(child) for child in rule.children]}
    if isinstance(rule, OrRule):
        return {"type": "or", "rules": [dump_rule(child) for child in rule.children]}
    return {"type": rule.type}


def _invalid(message: str) -> FeatureFlagError:
    return FeatureFlagError(FeatureFlagErrorCodes.INVALID_PAYLOAD, message)


def parse_flag_record(data: Any, max_depth: int = DEFAULT_MAX_DEPTH) -> FlagRecord:
    """``{key, tenantId, environment, enabled, rules}`` を FlagRecord に変換する。

    Raises:
        FeatureFlagError: レコード本体が不正な場合 INVALID_PAYLOAD、
            ルールツリーが深すぎる場合 RULE_TREE_TOO_DEEP
    """
    if not isinstance(data, Mapping):
        raise _invalid("flag record must be an object")
    key = data.get("key")
    if not isinstance(key, str) or not key:
        raise _invalid("flag record requires a non-empty 'key'")
    tenant_id = data.get("tenantId", data.get("tenant_id"))
    if not isinstance(tenant_id, str):
        raise _invalid(f"flag '{key}' requires a 'tenantId'")
    try:
        environment = Environment(data.get("environment"))
    except ValueError as e:
        raise FeatureFlagError(
            FeatureFlagErrorCodes.INVALID_PAYLOAD,
            f"flag '{key}' has unknown environment: {data.get('environment')!r}",
            cause=e,
        ) from e
    enabled = data.get("enabled")
    if not isinstance(enabled, bool):
        raise _invalid(f"flag '{key}' requires a boolean 'enabled'")
    rule_data = data["rules"] if "rules" in data else data.get("rule")
    return FlagRecord(
        key=key,
        tenant_id=tenant_id,
        environment=environment,
        enabled=enabled,
        rule=parse_rule(rule_data, max_depth=max_depth),
    )


def dump_flag_record(record: FlagRecord) -> dict[str, Any]:
    return {
        "key": record.key,
        "tenantId": record.tenant_id,
        "environment": str(record.environment),
        "enabled": record.enabled,
        "rules": dump_rule(record.rule),
    }


def parse_context(data: Any) -> EvaluationContext:
    """``{userId, environment, service?}`` を EvaluationContext に変換する。"""
    if not isinstance(data, Mapping):
        raise _invalid("evaluation context must be an object")
    user_id = data.get("userId")
    if not isinstance(user_id, str):
        raise _invalid("evaluation context requires a string 'userId'")
    environment = data.get("environment")
    if not isinstance(environment, str):
        raise _invalid("evaluation context requires a string 'environment'")
    service = data.get("service")
    if service is not None and not isinstance(service, str):
        raise _invalid("'service' must be a string when present")
    return EvaluationContext(subject_id=user_id, environment=environment, service=service)


def dump_decision(decision: Decision) -> dict[str, Any]:
    return decision.to_dict()
