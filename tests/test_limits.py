"""ルールツリー上限のユニットテスト"""

import pytest
from flag_engine import (
    AllowlistRule,
    AndRule,
    FeatureFlagError,
    FeatureFlagErrorCodes,
    OrRule,
    PercentageRule,
    RuleTreeStats,
    check_rule_budget,
    measure_rule,
)


def test_measure_leaf() -> None:
    """葉 1 つは深さ 1、ノード数 1。"""
    assert measure_rule(PercentageRule(10)) == RuleTreeStats(depth=1, nodes=1)


def test_measure_nested_tree() -> None:
    """深さとノード数が全ての分岐を数えること。"""
    rule = OrRule(
        (
            AllowlistRule(frozenset({"a"})),
            AndRule((PercentageRule(1), OrRule((PercentageRule(2),)))),
        )
    )
    assert measure_rule(rule) == RuleTreeStats(depth=4, nodes=6)


def test_measure_stops_early_past_bound() -> None:
    """上限を渡すと超過直後で走査が止まること。"""
    rule = OrRule(tuple(PercentageRule(i) for i in range(100)))
    stats = measure_rule(rule, max_nodes=10)
    assert stats.nodes == 11


def test_check_rule_budget_within_limits() -> None:
    """上限内のツリーは通過し計測値を返すこと。"""
    rule = AndRule((PercentageRule(1), PercentageRule(2)))
    assert check_rule_budget(rule, max_depth=2, max_nodes=3) == RuleTreeStats(depth=2, nodes=3)


def test_check_rule_budget_too_deep() -> None:
    """深さ上限超過で RULE_TREE_TOO_DEEP が発生すること。"""
    rule = AndRule((AndRule((PercentageRule(1),)),))
    with pytest.raises(FeatureFlagError) as exc_info:
        check_rule_budget(rule, max_depth=2, max_nodes=100)
    assert exc_info.value.code == FeatureFlagErrorCodes.RULE_TREE_TOO_DEEP
    assert str(exc_info.value).startswith("RULE_TREE_TOO_DEEP: ")


def test_check_rule_budget_too_large() -> None:
    """ノード数上限超過で RULE_TREE_TOO_LARGE が発生すること。"""
    rule = OrRule(tuple(PercentageRule(i) for i in range(5)))
    with pytest.raises(FeatureFlagError) as exc_info:
        check_rule_budget(rule, max_depth=10, max_nodes=5)
    assert exc_info.value.code == FeatureFlagErrorCodes.RULE_TREE_TOO_LARGE
