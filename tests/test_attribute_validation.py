"""Unit tests for the Attribute Validator.

Each test covers a specific answer type or constraint.
"""

import pytest

from app.domain.attribute_validation import AttributeValidator
from app.domain.exceptions import RuleViolationError

PLATFORM = {"key": "platform", "question": "Which platform?", "type": "select",
            "required": True, "options": ["Instagram", "Facebook"]}
FORMATS = {"key": "formats", "question": "Formats", "type": "multiselect",
           "options_with_cost": [{"value": "PNG", "credit_cost": 0}, {"value": "SVG", "credit_cost": 2}]}
PRODUCTS = {"key": "products", "question": "Number of products", "type": "number", "min": 1, "max": 200}
BRIEF = {"key": "brief", "question": "Describe the design", "type": "textarea"}


@pytest.fixture()
def validator():
    return AttributeValidator()


def _violations(validator, attributes, answers: dict):
    responses = [{"key": key, "question": key, "answer": answer} for key, answer in answers.items()]
    return validator.collect_violations(attributes, responses)


class TestRequired:

    def test_missing_required_answer(self, validator):
        assert _violations(validator, [PLATFORM], {}) == ['"Which platform?" is required']

    def test_optional_answer_may_be_missing(self, validator):
        assert _violations(validator, [BRIEF, PRODUCTS], {}) == []


class TestSelect:

    def test_valid_option(self, validator):
        assert _violations(validator, [PLATFORM], {"platform": "Facebook"}) == []

    def test_unknown_option(self, validator):
        violations = _violations(validator, [PLATFORM], {"platform": "MySpace"})
        assert violations == ['"Which platform?" must be one of: Instagram, Facebook']


class TestMultiselect:

    def test_options_from_cost_table_are_allowed(self, validator):
        assert _violations(validator, [FORMATS], {"formats": ["PNG", "SVG"]}) == []

    def test_must_be_a_list(self, validator):
        assert _violations(validator, [FORMATS], {"formats": "PNG"}) == ['"Formats" must be an array']

    def test_unknown_options_are_listed(self, validator):
        violations = _violations(validator, [FORMATS], {"formats": ["PNG", "GIF"]})
        assert violations == ['"Formats" contains invalid options: GIF']


class TestNumber:

    @pytest.mark.parametrize("answer", ["1", "200", 50, "12.5"])
    def test_within_bounds(self, validator, answer):
        assert _violations(validator, [PRODUCTS], {"products": answer}) == []

    def test_not_a_number(self, validator):
        violations = _violations(validator, [PRODUCTS], {"products": "many"})
        assert violations == ['"Number of products" must be a valid number']

    def test_below_min(self, validator):
        violations = _violations(validator, [PRODUCTS], {"products": "0"})
        assert violations == ['"Number of products" must be at least 1']

    def test_above_max(self, validator):
        violations = _violations(validator, [PRODUCTS], {"products": "201"})
        assert violations == ['"Number of products" must be at most 200']


class TestText:

    def test_whitespace_only_is_empty(self, validator):
        violations = _violations(validator, [BRIEF], {"brief": "   "})
        assert violations == ['"Describe the design" cannot be empty']

    def test_must_be_string(self, validator):
        violations = _violations(validator, [BRIEF], {"brief": ["a"]})
        assert violations == ['"Describe the design" must be a string']


class TestValidate:

    def test_raises_with_all_violations(self, validator):
        with pytest.raises(RuleViolationError) as exc_info:
            validator.validate([PLATFORM, PRODUCTS], [{"key": "products", "question": "x", "answer": "0"}])

        assert exc_info.value.violations == [
            '"Which platform?" is required',
            '"Number of products" must be at least 1',
        ]
        assert exc_info.value.status_code == 422

    def test_valid_responses_pass(self, validator):
        validator.validate(
            [PLATFORM, FORMATS],
            [{"key": "platform", "question": "Which platform?", "answer": "Instagram"},
             {"key": "formats", "question": "Formats", "answer": ["SVG"]}],
        )
