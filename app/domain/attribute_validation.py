"""Attribute Validator — checks client answers against a service's questions.

Pure business logic with no Flask or database dependency. Pricing never
calls this; a missing answer simply costs nothing there.
"""

import logging

from app.domain.exceptions import RuleViolationError
from app.domain.pricing_engine import match_responses, to_number

logger = logging.getLogger(__name__)


class AttributeValidator:
    """Validates attribute responses against the service type's attribute list.

    All questions are read from the service type's JSON ``attributes``
    column, so the validator is fully data-driven.
    """

    def validate(self, attributes: list[dict], responses: list[dict]) -> None:
        """Run all checks. Raises ``RuleViolationError`` if any fail."""
        violations = self.collect_violations(attributes, responses)
        if violations:
            logger.warning("Attribute violations: %s", violations)
            raise RuleViolationError(violations)

    def collect_violations(self, attributes: list[dict], responses: list[dict]) -> list[str]:
        violations: list[str] = []

        for attribute, answer in match_responses(attributes, responses):
            question = attribute.get("question", "")
            if answer is None:
                if attribute.get("required"):
                    violations.append(f'"{question}" is required')
                continue

            error = self._validate_by_type(attribute, answer)
            if error:
                violations.append(error)

        return violations

    # ------------------------------------------------------------------
    # Private validation helpers
    # ------------------------------------------------------------------

    def _validate_by_type(self, attribute: dict, answer) -> str | None:
        attr_type = attribute.get("type")
        if attr_type == "select":
            return self._validate_select(attribute, answer)
        if attr_type == "multiselect":
            return self._validate_multiselect(attribute, answer)
        if attr_type == "number":
            return self._validate_number(attribute, answer)
        if attr_type in {"text", "textarea"}:
            return self._validate_text(attribute, answer)
        return None

    @staticmethod
    def _validate_select(attribute: dict, answer) -> str | None:
        options = _allowed_options(attribute)
        if options and answer not in options:
            return f'"{attribute["question"]}" must be one of: {", ".join(options)}'
        return None

    @staticmethod
    def _validate_multiselect(attribute: dict, answer) -> str | None:
        if not isinstance(answer, list):
            return f'"{attribute["question"]}" must be an array'

        options = _allowed_options(attribute)
        if options:
            invalid = [opt for opt in answer if opt not in options]
            if invalid:
                return f'"{attribute["question"]}" contains invalid options: {", ".join(map(str, invalid))}'
        return None

    @staticmethod
    def _validate_number(attribute: dict, answer) -> str | None:
        if isinstance(answer, list):
            return f'"{attribute["question"]}" must be a number'

        value = to_number(answer)
        if value is None:
            return f'"{attribute["question"]}" must be a valid number'

        minimum = to_number(attribute.get("min"))
        if minimum is not None and value < minimum:
            return f'"{attribute["question"]}" must be at least {attribute["min"]}'

        maximum = to_number(attribute.get("max"))
        if maximum is not None and value > maximum:
            return f'"{attribute["question"]}" must be at most {attribute["max"]}'
        return None

    @staticmethod
    def _validate_text(attribute: dict, answer) -> str | None:
        if not isinstance(answer, str):
            return f'"{attribute["question"]}" must be a string'
        if not answer.strip():
            return f'"{attribute["question"]}" cannot be empty'
        return None


def _allowed_options(attribute: dict) -> list[str]:
    """Plain options plus any values only listed in the per-option cost table."""
    options = list(attribute.get("options") or [])
    for option in attribute.get("options_with_cost") or []:
        if isinstance(option, dict) and option.get("value") not in options:
            options.append(option.get("value"))
    return [str(opt) for opt in options if opt is not None]
