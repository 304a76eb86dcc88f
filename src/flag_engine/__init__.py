"""flag_engine feature flag evaluation library."""

import logging

from .bucketing import BUCKET_COUNT, bucket
from .config import EngineConfig, LimitsSection, LogSection, load_config, load_flag_records
from .evaluator import Evaluator, evaluate
from .exceptions import FeatureFlagError, FeatureFlagErrorCodes
from .limits import RuleTreeStats, check_rule_budget, measure_rule
from .logger import new_logger
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
from .service import FlagEvaluationService
from .store import FlagStoreProtocol, InMemoryFlagStore
from .trace import Decision, RuleKind, TraceEntry, TraceOutcome
from .wire import (
    dump_decision,
    dump_flag_record,
    dump_rule,
    parse_context,
    parse_flag_record,
    parse_rule,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "BUCKET_COUNT",
    "AllowlistRule",
    "AndRule",
    "Decision",
    "EngineConfig",
    "Environment",
    "EvaluationContext",
    "Evaluator",
    "FeatureFlagError",
    "FeatureFlagErrorCodes",
    "FlagEvaluationService",
    "FlagRecord",
    "FlagStoreProtocol",
    "InMemoryFlagStore",
    "LimitsSection",
    "LogSection",
    "OrRule",
    "PercentageRule",
    "RuleKind",
    "RuleNode",
    "RuleTreeStats",
    "TraceEntry",
    "TraceOutcome",
    "UnknownRule",
    "bucket",
    "check_rule_budget",
    "dump_decision",
    "dump_flag_record",
    "dump_rule",
    "evaluate",
    "load_config",
    "load_flag_records",
    "measure_rule",
    "new_logger",
    "parse_context",
    "parse_flag_record",
    "parse_rule",
]
