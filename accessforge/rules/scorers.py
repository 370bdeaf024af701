from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from accessforge.core.constants import RuleStatus
from accessforge.core.exceptions import RuleEvaluationError
from accessforge.rules.paths import resolve_path
from accessforge.rules.scoring import clamp_score


@dataclass
class ScorerResult:
    status: RuleStatus
    score: int
    message: Optional[str] = None
    actual: Any = None
    expected: Any = None


# (rule, finding, context) -> ScorerResult
Scorer = Callable[[Any, Dict[str, Any], Any], ScorerResult]


def _number(value: Any, path: str) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise RuleEvaluationError(f"Value at '{path}' is not numeric: {value!r}")
    return float(value)


def ratio_scorer(rule: Any, finding: Dict[str, Any], context: Any) -> ScorerResult:
    """
    Score the ratio between two numeric paths.

    Params: ``numerator_path``, ``denominator_path`` and ``minimum`` (0-1).
    The score is the ratio as a percentage; the rule passes once the ratio
    reaches the minimum. A missing or zero denominator makes the rule not
    applicable.
    """
    params = rule.params
    try:
        numerator_path = params["numerator_path"]
        denominator_path = params["denominator_path"]
    except KeyError as e:
        raise RuleEvaluationError(f"ratio scorer requires parameter {e}") from e

    minimum = float(params.get("minimum", 1.0))
    if not 0 <= minimum <= 1:
        raise RuleEvaluationError(f"ratio scorer minimum must be within [0, 1], got {minimum}")

    base = resolve_path(finding, rule.data_path) if rule.data_path else finding
    numerator = _number(resolve_path(base, numerator_path), numerator_path)
    denominator = _number(resolve_path(base, denominator_path), denominator_path)

    if numerator is None or not denominator:
        return ScorerResult(status=RuleStatus.NOT_APPLICABLE, score=0, expected=minimum)

    ratio = numerator / denominator
    passed = ratio >= minimum
    return ScorerResult(
        status=RuleStatus.PASSED if passed else RuleStatus.FAILED,
        score=clamp_score(ratio * 100),
        message=None if passed else f"Ratio {ratio:.2f} is below the required {minimum:.2f}",
        actual=round(ratio, 4),
        expected=minimum,
    )


BUILTIN_SCORERS: Dict[str, Scorer] = {
    "ratio": ratio_scorer,
}
