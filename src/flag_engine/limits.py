"""ルールツリーのサイズと深さの上限"""

from __future__ import annotations

from dataclasses import dataclass

from .exceptions import FeatureFlagError, FeatureFlagErrorCodes
from .models import AndRule, OrRule, RuleNode

DEFAULT_MAX_DEPTH = 32
DEFAULT_MAX_NODES = 1000


@dataclass(frozen=True)
class RuleTreeStats:
    """ルールツリーの深さとノード数。葉 1 つだけの深さは 1。"""

    depth: int
    nodes: int


def measure_rule(
    rule: RuleNode,
    max_depth: int | None = None,
    max_nodes: int | None = None,
) -> RuleTreeStats:
    """明示的なスタックで ``rule`` を計測する。

    上限を渡した場合は超過した時点で走査を打ち切る。その場合の戻り値は下限値。
    """
    depth = 0
    nodes = 0
    stack: list[tuple[RuleNode, int]] = [(rule, 1)]
    while stack:
        node, level = stack.pop()
        nodes += 1
        depth = max(depth, level)
        if max_depth is not None and depth > max_depth:
            break
        if max_nodes is not None and nodes > max_nodes:
            break
        if isinstance(node, (AndRule, OrRule)):
            stack.extend((child, level + 1) for child in node.children)
    return RuleTreeStats(depth=depth, nodes=nodes)


def check_rule_budget(rule: RuleNode, max_depth: int, max_nodes: int) -> RuleTreeStats:
    """``max_depth`` より深い、または ``max_nodes`` より大きいツリーを拒否する。

    Raises:
        FeatureFlagError: RULE_TREE_TOO_DEEP または RULE_TREE_TOO_LARGE
    """
    stats = measure_rule(rule, max_depth=max_depth, max_nodes=max_nodes)
    if stats.depth > max_depth:
        raise FeatureFlagError(
            FeatureFlagErrorCodes.RULE_TREE_TOO_DEEP,
            f"rule tree too deep: exceeds {max_depth} levels",
        )
    if stats.nodes > max_nodes:
        raise FeatureFlagError(
            FeatureFlagErrorCodes.RULE_TREE_TOO_LARGE,
            f"rule tree too large: exceeds {max_nodes} nodes",
        )
    return stats
