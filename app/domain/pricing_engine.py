"""Pricing Engine — credit cost of a service request.

Total = base credit cost + attribute surcharges + priority surcharge.

Every service-type attribute is classified into one pricing rule:

  - ``PerOptionRule``   explicit ``options_with_cost`` table (wins when present)
  - ``MultiplierRule``  numeric answer × ``credit_impact``, optionally only
                        for the quantity above ``included_quantity``
  - ``NoSurcharge``     free text, or no cost configured

New rule kinds can be added by subclassing ``PricingRule`` and extending
``pricing_rule_for``; the engine itself does not change.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import ROUND_CEILING, Decimal, InvalidOperation

from app.config.settings import get_setting
from app.domain.exceptions import PricingError

logger = logging.getLogger(__name__)

TEXT_TYPES = {"text", "textarea"}


class Priority:
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    ALL = (LOW, MEDIUM, HIGH)


# ---------------------------------------------------------------------------
# Answer helpers
# ---------------------------------------------------------------------------
def to_number(answer) -> Decimal | None:
    """Parse a single answer as a finite number, or return None."""
    if answer is None or isinstance(answer, (list, tuple, bool)):
        return None
    try:
        value = Decimal(str(answer).strip())
    except InvalidOperation:
        return None
    if not value.is_finite():
        return None
    return value


def to_credits(amount: Decimal) -> int:
    """Round a surcharge up to whole credits, never below zero."""
    if amount <= 0:
        return 0
    return int(amount.to_integral_value(rounding=ROUND_CEILING))


# ---------------------------------------------------------------------------
# Pricing rules
# ---------------------------------------------------------------------------
class PricingRule(ABC):
    """How one attribute's answer turns into credits."""

    @abstractmethod
    def cost(self, answer) -> Decimal:
        """Return the (unrounded, non-negative) surcharge for ``answer``."""


@dataclass(frozen=True)
class NoSurcharge(PricingRule):

    def cost(self, answer) -> Decimal:
        return Decimal("0")


@dataclass(frozen=True)
class MultiplierRule(PricingRule):
    """``value × impact``, or ``max(0, value - included) × impact``."""

    impact: Decimal
    included_quantity: Decimal | None = None

    def cost(self, answer) -> Decimal:
        # Multiselect answers are not priced by multiplier.
        value = to_number(answer)
        if value is None:
            return Decimal("0")
        if self.included_quantity is not None:
            value = max(Decimal("0"), value - self.included_quantity)
        return max(Decimal("0"), value * self.impact)


@dataclass(frozen=True)
class PerOptionRule(PricingRule):
    """Sum of the listed cost of every selected option.

    Options missing from the table fall back to the multiplier when the
    attribute also carries a ``credit_impact``.
    """

    table: dict[str, Decimal] = field(default_factory=dict)
    fallback: MultiplierRule | None = None

    def cost(self, answer) -> Decimal:
        selected = answer if isinstance(answer, (list, tuple)) else [answer]
        total = Decimal("0")
        for option in selected:
            key = str(option)
            if key in self.table:
                total += max(Decimal("0"), self.table[key])
            elif self.fallback is not None:
                total += self.fallback.cost(option)
        return total


def pricing_rule_for(attribute: dict) -> PricingRule:
    """Classify an attribute definition into its pricing rule."""
    if attribute.get("type") in TEXT_TYPES:
        return NoSurcharge()

    impact = to_number(attribute.get("credit_impact"))
    included = to_number(attribute.get("included_quantity"))
    multiplier = MultiplierRule(impact, included) if impact else None

    table = {
        str(option["value"]): to_number(option.get("credit_cost"))
        for option in attribute.get("options_with_cost") or []
        if isinstance(option, dict) and "value" in option
    }
    table = {value: cost for value, cost in table.items() if cost is not None}
    if table:
        return PerOptionRule(table=table, fallback=multiplier)

    if multiplier is not None:
        return multiplier
    return NoSurcharge()


# ---------------------------------------------------------------------------
# Response matching
# ---------------------------------------------------------------------------
def _is_blank(answer) -> bool:
    if answer is None:
        return True
    if isinstance(answer, (list, tuple)):
        return len(answer) == 0
    return str(answer) == ""


def match_responses(attributes: list[dict], responses: list[dict]) -> list[tuple[dict, object]]:
    """Pair each attribute with the client's answer (or None).

    A stable ``key`` on both sides wins; the question text is the fallback
    for definitions and answers that predate keys.
    """
    by_key: dict[str, object] = {}
    by_question: dict[str, object] = {}
    for response in responses or []:
        if not isinstance(response, dict):
            continue
        if response.get("key"):
            by_key[response["key"]] = response.get("answer")
        if response.get("question") is not None:
            by_question[response["question"]] = response.get("answer")

    pairs = []
    for attribute in attributes or []:
        key = attribute.get("key")
        if key and key in by_key:
            answer = by_key[key]
        else:
            answer = by_question.get(attribute.get("question"))
        pairs.append((attribute, None if _is_blank(answer) else answer))
    return pairs


# ---------------------------------------------------------------------------
# Attribute surcharges
# ---------------------------------------------------------------------------
def calculate_attribute_credit_breakdown(
    attributes: list[dict], responses: list[dict],
) -> list[dict]:
    """Per-attribute surcharge lines, only for attributes that cost something.

    Raises ``PricingError`` when one answer would cost more than
    ``MAX_REQUEST_CREDIT_COST``.
    """
    limit = get_setting("MAX_REQUEST_CREDIT_COST")
    items = []
    for attribute, answer in match_responses(attributes, responses):
        if answer is None:
            continue
        try:
            amount = pricing_rule_for(attribute).cost(answer)
        except ArithmeticError as err:
            raise PricingError(f'"{attribute.get("question")}" is too large to price') from err
        if amount > limit:
            raise PricingError(
                f'"{attribute.get("question")}" would cost more than {limit} credits',
            )
        cost = to_credits(amount)
        if cost > 0:
            items.append({
                "question": attribute.get("question"),
                "answer": answer,
                "cost": cost,
            })
    return items


def compute_attribute_credits(attributes: list[dict], responses: list[dict]) -> int:
    """Total additional credits driven by the client's answers."""
    return sum(
        item["cost"] for item in calculate_attribute_credit_breakdown(attributes, responses)
    )


def priority_cost(service_type, priority: str) -> int:
    """Surcharge for the chosen priority level (defaults 0/1/2 when unset)."""
    if priority not in Priority.ALL:
        raise PricingError(f"Unknown priority: '{priority}'")

    configured = getattr(service_type, f"priority_cost_{priority}", None)
    if configured is None:
        return get_setting("DEFAULT_PRIORITY_COSTS")[priority]
    return max(0, int(configured))


# ---------------------------------------------------------------------------
# Quote data object
# ---------------------------------------------------------------------------
@dataclass
class CreditQuote:
    """Itemised credit cost of a request."""

    base_cost: int = 0
    attribute_credits: int = 0
    priority_cost: int = 0
    attribute_items: list[dict] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.base_cost + self.attribute_credits + self.priority_cost

    def to_dict(self) -> dict:
        return {
            "base_cost": self.base_cost,
            "attribute_credits": self.attribute_credits,
            "priority_cost": self.priority_cost,
            "attribute_items": self.attribute_items,
            "total": self.total,
        }


# ---------------------------------------------------------------------------
# Pricing Engine (facade)
# ---------------------------------------------------------------------------
class PricingEngine:
    """Prices a request against its service type's current configuration."""

    def quote(self, service_type, responses: list[dict], priority: str = Priority.MEDIUM) -> CreditQuote:
        """Calculate the full credit cost of a new request.

        Args:
            service_type: ``ServiceType`` record (or any object with the same fields).
            responses: The client's attribute answers.
            priority: One of ``low``, ``medium``, ``high``.

        Returns:
            A ``CreditQuote`` with base, attribute and priority parts.
        """
        base = service_type.credit_cost or get_setting("DEFAULT_BASE_CREDIT_COST")
        items = calculate_attribute_credit_breakdown(service_type.attributes or [], responses)

        quote = CreditQuote(
            base_cost=int(base),
            attribute_credits=sum(item["cost"] for item in items),
            priority_cost=priority_cost(service_type, priority),
            attribute_items=items,
        )
        limit = get_setting("MAX_REQUEST_CREDIT_COST")
        if quote.total > limit:
            raise PricingError(f"Request would cost {quote.total} credits; the maximum is {limit}")
        logger.info(
            "Pricing calculated — service_type=%s, priority=%s, total=%s",
            getattr(service_type, "id", None), priority, quote.total,
        )
        return quote
