"""featureflag データモデル: ルールツリー、フラグレコード、評価コンテキスト"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class Environment(StrEnum):
    """フラグレコードが属するデプロイ環境。"""

    DEV = "DEV"
    STAGING = "STAGING"
    PROD = "PROD"


@dataclass(frozen=True)
class PercentageRule:
    """パーセンテージロールアウト。バケットが ``threshold`` 未満のサブジェクトに一致する。

    永続化されたルールに有効な値が無い場合 ``threshold`` は ``None``。
    """

    threshold: int | None


@dataclass(frozen=True)
class AllowlistRule:
    """サブジェクト ID の完全一致ターゲティング。"""

    subjects: frozenset[str] | None


@dataclass(frozen=True)
class AndRule:
    """子ルールの AND。先頭から順に評価する。"""

    children: tuple[RuleNode, ...] = ()


@dataclass(frozen=True)
class OrRule:
    """子ルールの OR。先頭から順に評価する。"""

    children: tuple[RuleNode, ...] = ()


@dataclass(frozen=True)
class UnknownRule:
    """判別子を認識できなかった永続化ルール。"""

    type: str | None = None


RuleNode = PercentageRule | AllowlistRule | AndRule | OrRule | UnknownRule


@dataclass(frozen=True)
class FlagRecord:
    """テナントと環境ごとのフィーチャーフラグ。"""

    key: str
    tenant_id: str
    environment: Environment
    enabled: bool
    rule: RuleNode


@dataclass(frozen=True)
class EvaluationContext:
    """フラグ評価コンテキスト。

    空の ``subject_id`` も受け付け、他の文字列と同様にバケット化する。
    """

    subject_id: str
    environment: str
    service: str | None = None
