"""
AccessForge rules engine

Evaluates producer findings against a catalogue of accessibility rules and
turns the evaluations into weighted, multi-standard compliance scores.

Core components:
- models: typed rule definitions (one model per rule kind) and results
- catalogue: built-in WCAG 2.1/2.2, Section 508 and EN 301 549 rules
- evaluator: per-kind rule evaluation with partial credit
- cache: bounded LRU cache of evaluations
- aggregator: per-standard/level scores, grade and risk verdicts
- recommendations: rules-phase recommendations and top-level merging
- engine: facade tying the above together

Usage:
    from accessforge.rules.engine import RulesEngine

    engine = RulesEngine()
    result = await engine.evaluate({"color_contrast": finding}, context)
"""

from .models import RuleDefinition, RuleEvaluation, RulesResult, parse_rule

__all__ = [
    "RuleDefinition",
    "RuleEvaluation",
    "RulesResult",
    "parse_rule",
]
