"""構造化された評価トレースと Decision"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import StrEnum
from typing import Any


class RuleKind(StrEnum):
    """トレースエントリが表すノードの種類。"""

    FLAG = "flag"
    PERCENTAGE = "percentage"
    ALLOWLIST = "allowlist"
    AND = "and"
    OR = "or"
    UNKNOWN = "unknown"


class TraceOutcome(StrEnum):
    """訪問したノードの評価結果。"""

    MATCHED = "matched"
    NOT_MATCHED = "not_matched"
    INVALID = "invalid"
    DISABLED = "disabled"


@dataclass(frozen=True)
class TraceEntry:
    """訪問したノード 1 件分の記録。

    後順で記録する。複合ルールのエントリは、訪問した子のエントリの後に続く。
    And/Or エントリの ``child_index`` は結果を決めた子の位置。
    """

    kind: RuleKind
    outcome: TraceOutcome
    message: str
    depth: int = 0
    bucket: int | None = None
    threshold: int | None = None
    subject_in_list: bool | None = None
    child_index: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {key: value for key, value in asdict(self).items() if value is not None}


@dataclass(frozen=True)
class Decision:
    """フラグ評価結果。"""

    enabled: bool
    reason: str
    trace: tuple[TraceEntry, ...] = ()

    def render(self) -> str:
        """トレースを訪問ノードごとに 1 行のインデント付きテキストにする。"""
        status = "ENABLED" if self.enabled else "DISABLED"
        lines = [f"{status}: {self.reason}"]
        for entry in self.trace:
            indent = "  " * (entry.depth + 1)
            lines.append(f"{indent}[{entry.kind}] {entry.outcome}: {entry.message}")
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        return {
            "enabled": self.enabled,
            "reason": self.reason,
            "trace": [entry.to_dict() for entry in self.trace],
        }
