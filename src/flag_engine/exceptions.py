"""flag_engine ライブラリの例外型定義"""

from __future__ import annotations


class FeatureFlagError(Exception):
    """flag_engine ライブラリのエラー基底クラス。"""

    def __init__(
        self,
        code: str,
        message: str,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        return f"{self.code}: {super().__str__()}"


class FeatureFlagErrorCodes:
    """エラーコード定数。"""

    FLAG_NOT_FOUND: str = "FLAG_NOT_FOUND"
    RULE_TREE_TOO_DEEP: str = "RULE_TREE_TOO_DEEP"
    RULE_TREE_TOO_LARGE: str = "RULE_TREE_TOO_LARGE"
    ENVIRONMENT_MISMATCH: str = "ENVIRONMENT_MISMATCH"
    INVALID_PAYLOAD: str = "INVALID_PAYLOAD"
    READ_FILE: str = "READ_FILE_ERROR"
    PARSE_YAML: str = "PARSE_YAML_ERROR"
    VALIDATION: str = "VALIDATION_ERROR"
