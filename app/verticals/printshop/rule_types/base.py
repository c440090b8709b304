from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional, Type, TYPE_CHECKING

D = Decimal

# Decisions (avoid string typos)
DECISION_APPLIED = "APPLIED"
DECISION_SKIPPED = "SKIPPED"

if TYPE_CHECKING:
    from ..engine.context import EngineContext
    from ..engine.line_state import LineState


@dataclass(frozen=True)
class RuleResult:
    """
    Result of applying a pricing rule to one line.
    - decision: APPLIED / SKIPPED
    - delta: per-unit amount taken off the running price (>= 0)
    - meta: explainability payload
    """

    decision: str
    delta: D
    meta: Dict[str, Any]

    @staticmethod
    def applied(delta: D, meta: Optional[Dict[str, Any]] = None) -> "RuleResult":
        return RuleResult(decision=DECISION_APPLIED, delta=delta, meta=meta or {})

    @staticmethod
    def skipped(meta: Optional[Dict[str, Any]] = None) -> "RuleResult":
        return RuleResult(decision=DECISION_SKIPPED, delta=D("0"), meta=meta or {})


class Rule:
    """
    Base class for pricing rules. Every rule implements apply(ctx, line_state)
    and discounts line_state.unit_price in place.
    """

    type_name: str = "base"
    title: str = "Rule"

    def apply(self, ctx: "EngineContext", line_state: "LineState") -> RuleResult:
        raise NotImplementedError


# Registry: rule_type -> Rule class
rule_registry: Dict[str, Type[Rule]] = {}


def register(rule_cls: Type[Rule]) -> Type[Rule]:
    """
    Decorator to register a rule by its type_name.
    Fails fast on duplicate registrations.
    """
    key = getattr(rule_cls, "type_name", None)
    if not key or key == "base":
        raise ValueError(f"Rule class {rule_cls.__name__} has no type_name")

    if key in rule_registry and rule_registry[key] is not rule_cls:
        raise ValueError(
            f"Duplicate rule registration for type '{key}': "
            f"{rule_registry[key].__name__} vs {rule_cls.__name__}"
        )

    rule_registry[key] = rule_cls
    return rule_cls
