"""Declarative triage rules and their evaluation."""

from .globs import GlobSet, glob_match
from .loader import load_rules, parse_rules
from .matcher import MatchResult, RuleMatch, RuleMatcher
from .models import CommentRule, MentionRule, PathLabelRule, Rule, RuleKind, RuleSet

__all__ = [
    "CommentRule",
    "GlobSet",
    "MatchResult",
    "MentionRule",
    "PathLabelRule",
    "Rule",
    "RuleKind",
    "RuleMatch",
    "RuleMatcher",
    "RuleSet",
    "glob_match",
    "load_rules",
    "parse_rules",
]
