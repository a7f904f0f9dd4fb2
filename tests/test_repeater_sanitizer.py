"""
Unit tests for RepeaterSanitizer.
Covers decoding, row/subfield filtering, type dispatch and callback overrides.
"""
import json
from urllib.parse import quote

import pytest

from app.schemas.repeater import SubfieldDefinition, SubfieldType
from app.services.exceptions import DecodeError, SanitizerErrorCode
from app.services.sanitizers.repeater_sanitizer import (
    RepeaterSanitizer,
    SanitizeReport,
    sanitize_repeater_value,
)


@pytest.fixture
def sanitizer():
    return RepeaterSanitizer()


@pytest.fixture
def mixed_schema():
    return {
        "title": {"type": "text"},
        "body": {"type": "textarea"},
        "link": {"type": "url"},
        "image": {"type": "image"},
        "page": {"type": "dropdown-pages"},
        "color": {"type": "color"},
        "email": {"type": "email"},
        "enabled": {"type": "checkbox"},
        "tags": {"type": "select", "multiple": True},
        "layout": {"type": "radio-image"},
    }


@pytest.fixture
def mixed_value():
    return {
        "0": {
            "title": "<b>Tom</b> & Jerry",
            "body": "<p onclick='x()'>Hello <em>there</em></p><script>bad()</script>",
            "link": "example.com/page",
            "image": "42",
            "page": "42abc",
            "color": "#ABC",
            "email": "jo hn@example.com",
            "enabled": "on",
            "tags": ["<i>a</i>", "b"],
            "layout": "left\nwide",
            "stale": "removed",
        },
        "1": "not-a-row",
    }


class TestDocumentedBehaviour:
    """Core coercion and filtering examples."""

    def test_checkbox_coerced_to_bool(self, sanitizer):
        result = sanitizer.sanitize({"0": {"qty": "checkbox-on"}}, {"qty": {"type": "checkbox"}})
        assert result == {"0": {"qty": True}}

    def test_dropdown_pages_coerced_to_int(self, sanitizer):
        result = sanitizer.sanitize({"0": {"age": "42abc"}}, {"age": {"type": "dropdown-pages"}})
        assert result == {"0": {"age": 42}}

    def test_url_dangerous_scheme_removed(self, sanitizer):
        result = sanitizer.sanitize({"0": {"site": "javascript:alert(1)"}}, {"site": {"type": "url"}})
        assert result == {"0": {"site": ""}}

    def test_malformed_row_replaced(self, sanitizer):
        result = sanitizer.sanitize({"0": "not-a-row"}, {"x": {"type": "text"}})
        assert result == {"0": {}}

    def test_select_multiple_list(self, sanitizer):
        result = sanitizer.sanitize(
            {"0": {"tags": ["a", "b"]}},
            {"tags": {"type": "select", "multiple": True}},
        )
        assert result == {"0": {"tags": ["a", "b"]}}


class TestNormalization:
    """Tests for input decoding."""

    def test_percent_encoded_json_equivalent(self, sanitizer, mixed_value, mixed_schema):
        encoded = quote(json.dumps(mixed_value))
        assert sanitizer.sanitize(encoded, mixed_schema) == sanitizer.sanitize(mixed_value, mixed_schema)

    def test_plain_json_string(self, sanitizer):
        result = sanitizer.sanitize('{"0": {"t": "<b>x</b>"}}', {"t": {"type": "text"}})
        assert result == {"0": {"t": "x"}}

    def test_plus_is_not_a_space(self, sanitizer):
        result = sanitizer.sanitize('{"0": {"t": "a+b"}}', {"t": {"type": "text"}})
        assert result == {"0": {"t": "a+b"}}

    def test_blank_and_none_are_empty(self, sanitizer):
        assert sanitizer.sanitize("", {"t": {"type": "text"}}) == {}
        assert sanitizer.sanitize("   ", {"t": {"type": "text"}}) == {}
        assert sanitizer.sanitize(None, {"t": {"type": "text"}}) == {}

    @pytest.mark.parametrize("value", [
        "%7Bnot json",
        "{'single': 'quotes'}",
        '"just a string"',
        "42",
        "null",
        "NaN",
        "[NaN]",
    ])
    def test_invalid_strings_raise_decode_error(self, sanitizer, value):
        with pytest.raises(DecodeError) as exc_info:
            sanitizer.sanitize(value, {"t": {"type": "text"}})
        assert exc_info.value.error_code == SanitizerErrorCode.DECODE_ERROR
        assert exc_info.value.status_code == 400
        assert exc_info.value.retryable is False

    def test_non_collection_input_raises(self, sanitizer):
        with pytest.raises(DecodeError):
            sanitizer.sanitize(5, {"t": {"type": "text"}})

    def test_decode_error_without_schema(self, sanitizer):
        with pytest.raises(DecodeError):
            sanitizer.sanitize("{broken", {})

    def test_oversized_value_rejected(self):
        small = RepeaterSanitizer(max_value_bytes=16)
        with pytest.raises(DecodeError):
            small.sanitize(json.dumps({"0": {"t": "x" * 32}}), {"t": {"type": "text"}})


class TestEmptySchema:
    """Tests for the empty-schema short circuit."""

    def test_structured_value_unchanged(self, sanitizer):
        value = {"0": {"x": "<b>raw</b>"}, "1": "scalar"}
        assert sanitizer.sanitize(value, {}) == value
        assert sanitizer.sanitize(value, None) == value

    def test_string_value_only_decoded(self, sanitizer):
        value = {"0": {"x": "<b>raw</b>"}}
        assert sanitizer.sanitize(quote(json.dumps(value)), {}) == value


class TestRowFiltering:
    """Tests for malformed rows and unknown subfields."""

    def test_unknown_subfields_dropped(self, sanitizer):
        result = sanitizer.sanitize(
            {"0": {"title": "a", "stale": "b"}, "1": {"other": 1}},
            {"title": {"type": "text"}},
        )
        assert result == {"0": {"title": "a"}, "1": {}}

    def test_list_of_rows_preserved(self, sanitizer):
        result = sanitizer.sanitize(
            [{"t": "<b>a</b>"}, "bad", None, {"t": "b", "x": 1}],
            {"t": {"type": "text"}},
        )
        assert result == [{"t": "a"}, {}, {}, {"t": "b"}]

    def test_input_not_mutated(self, sanitizer, mixed_value, mixed_schema):
        original = json.loads(json.dumps(mixed_value))
        sanitizer.sanitize(mixed_value, mixed_schema)
        assert mixed_value == original

    def test_report_counts(self, sanitizer, mixed_value, mixed_schema):
        _, report = sanitizer.sanitize_with_report(mixed_value, mixed_schema)
        assert report == SanitizeReport(rows=2, dropped_rows=1, dropped_subfields=1)

    def test_output_keys_subset_of_schema(self, sanitizer, mixed_value, mixed_schema):
        result = sanitizer.sanitize(mixed_value, mixed_schema)
        for row in result.values():
            assert set(row) <= set(mixed_schema)


class TestTypeDispatch:
    """Tests for per-type rules."""

    def test_mixed_row(self, sanitizer, mixed_value, mixed_schema):
        row = sanitizer.sanitize(mixed_value, mixed_schema)["0"]
        assert row == {
            "title": "Tom & Jerry",
            "body": "<p>Hello <em>there</em></p>",
            "link": "http://example.com/page",
            "image": "42",
            "page": 42,
            "color": "#aabbcc",
            "email": "john@example.com",
            "enabled": True,
            "tags": ["a", "b"],
            "layout": "left wide",
        }

    @pytest.mark.parametrize("subfield_type", ["image", "cropped_image", "upload"])
    def test_upload_types(self, sanitizer, subfield_type):
        schema = {"f": {"type": subfield_type}}
        assert sanitizer.sanitize({"0": {"f": "123"}}, schema) == {"0": {"f": "123"}}
        assert sanitizer.sanitize({"0": {"f": 123}}, schema) == {"0": {"f": 123}}
        assert sanitizer.sanitize(
            {"0": {"f": "https://cdn.example.com/a.png"}}, schema
        ) == {"0": {"f": "https://cdn.example.com/a.png"}}
        assert sanitizer.sanitize({"0": {"f": "javascript:x()"}}, schema) == {"0": {"f": ""}}

    @pytest.mark.parametrize("subfield_type", ["text", "tel", "radio", "radio-image"])
    def test_plain_text_types(self, sanitizer, subfield_type):
        result = sanitizer.sanitize({"0": {"f": " <i>+1 555</i> "}}, {"f": {"type": subfield_type}})
        assert result == {"0": {"f": "+1 555"}}

    def test_link_type(self, sanitizer):
        result = sanitizer.sanitize({"0": {"f": "mailto:a@b.c"}}, {"f": {"type": "link"}})
        assert result == {"0": {"f": "mailto:a@b.c"}}

    def test_color_falsy_unchanged(self, sanitizer):
        result = sanitizer.sanitize({"0": {"c": ""}}, {"c": {"type": "color"}})
        assert result == {"0": {"c": ""}}

    def test_select_without_multiple_unchanged(self, sanitizer):
        result = sanitizer.sanitize({"0": {"s": ["<b>a</b>"]}}, {"s": {"type": "select"}})
        assert result == {"0": {"s": ["<b>a</b>"]}}

    def test_select_integer_multiple(self, sanitizer):
        schema = {"s": {"type": "select", "multiple": 3}}
        assert sanitizer.sanitize({"0": {"s": "<b>a</b>"}}, schema) == {"0": {"s": ["a"]}}
        assert sanitizer.sanitize({"0": {"s": None}}, schema) == {"0": {"s": []}}

    def test_select_multiple_mapping_keeps_keys(self, sanitizer):
        result = sanitizer.sanitize(
            {"0": {"s": {"first": "<b>a</b>", "second": "b\nc"}}},
            {"s": {"type": "select", "multiple": True}},
        )
        assert result == {"0": {"s": {"first": "a", "second": "b c"}}}

    @pytest.mark.parametrize("subfield_type", ["text", "tel", "radio", "radio-image"])
    def test_plain_text_keeps_ampersands(self, sanitizer, subfield_type):
        schema = {"t": {"type": subfield_type}}
        once = sanitizer.sanitize({"0": {"t": "Tom & Jerry > Q&A"}}, schema)
        assert once == {"0": {"t": "Tom & Jerry > Q&A"}}
        assert sanitizer.sanitize(once, schema) == once

    def test_select_single(self, sanitizer):
        assert sanitizer.sanitize(
            {"0": {"s": "<b>a</b>"}}, {"s": {"type": "select", "multiple": 1}}
        ) == {"0": {"s": "a"}}
        assert sanitizer.sanitize(
            {"0": {"s": ["a"]}}, {"s": {"type": "select", "multiple": False}}
        ) == {"0": {"s": ""}}

    def test_missing_type_unchanged(self, sanitizer):
        result = sanitizer.sanitize({"0": {"raw": "<b>x</b>"}}, {"raw": {}})
        assert result == {"0": {"raw": "<b>x</b>"}}

    def test_unknown_type_unchanged(self, sanitizer):
        result = sanitizer.sanitize({"0": {"r": "<b>x</b>"}}, {"r": {"type": "slider"}})
        assert result == {"0": {"r": "<b>x</b>"}}

    def test_custom_protocols(self):
        strict = RepeaterSanitizer(allowed_protocols=["https"])
        result = strict.sanitize(
            {"0": {"a": "http://example.com", "b": "https://example.com"}},
            {"a": {"type": "url"}, "b": {"type": "url"}},
        )
        assert result == {"0": {"a": "", "b": "https://example.com"}}


class TestCallbacks:
    """Tests for per-subfield sanitize callbacks."""

    def test_callback_overrides_type_rule(self, sanitizer):
        schema = {"t": SubfieldDefinition(type="text", sanitize_callback=lambda v: v.upper())}
        assert sanitizer.sanitize({"0": {"t": "<b>x</b>"}}, schema) == {"0": {"t": "<B>X</B>"}}

    def test_callback_ignored_without_type(self, sanitizer):
        calls = []
        schema = {"t": SubfieldDefinition(sanitize_callback=calls.append)}
        assert sanitizer.sanitize({"0": {"t": "x"}}, schema) == {"0": {"t": "x"}}
        assert calls == []

    def test_named_callback(self, sanitizer):
        schema = {"n": {"type": "text", "sanitizeCallback": "absint"}}
        assert sanitizer.sanitize({"0": {"n": "-12px"}}, schema) == {"0": {"n": 12}}

    def test_callback_errors_propagate(self, sanitizer):
        def boom(value):
            raise RuntimeError("callback failed")

        schema = {"t": SubfieldDefinition(type="text", sanitize_callback=boom)}
        with pytest.raises(RuntimeError):
            sanitizer.sanitize({"0": {"t": "x"}}, schema)


class TestIdempotence:
    """Sanitizing twice gives the same result as sanitizing once."""

    def test_mixed_schema(self, sanitizer, mixed_value, mixed_schema):
        once = sanitizer.sanitize(mixed_value, mixed_schema)
        assert sanitizer.sanitize(once, mixed_schema) == once

    def test_module_helper(self, mixed_value, mixed_schema):
        once = sanitize_repeater_value(mixed_value, mixed_schema)
        assert sanitize_repeater_value(once, mixed_schema) == once


class TestSubfieldType:
    def test_parse(self):
        assert SubfieldType.parse("dropdown-pages") is SubfieldType.DROPDOWN_PAGES
        assert SubfieldType.parse("slider") is None
        assert SubfieldType.parse(None) is None
