"""Metric normalization: per-kind rules and the normalizer that applies them."""

from .normalizer import MetricNormalizer, check_rule
from .rules import MetricRule, RuleSet

__all__ = ["MetricNormalizer", "MetricRule", "RuleSet", "check_rule"]
