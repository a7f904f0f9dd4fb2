"""
Tests for RepeaterField setting/control argument filters.
"""
import pytest

from app.services.repeater_field import CONTROL_TYPE, RepeaterField
from app.services.sanitizers.repeater_sanitizer import RepeaterSanitizer


@pytest.fixture
def field():
    return RepeaterField(
        settings="team_members",
        label="Team",
        section="about",
        row_label={"type": "field", "value": "Member", "field": "name"},
        button_label="Add member",
        limit=5,
        fields={
            "name": {"type": "text", "label": "Name"},
            "profile": {"type": "url", "label": "Profile"},
            "slug": {"type": "text", "sanitizeCallback": "sanitize_key"},
        },
    )


class TestSettingArgs:
    def test_sets_sanitize_callback(self, field):
        args = field.filter_setting_args({"settings": "team_members"})
        assert args["sanitize_callback"] == field.sanitize

    def test_keeps_existing_callback(self, field):
        custom = lambda v: v
        args = field.filter_setting_args({"settings": "team_members", "sanitize_callback": custom})
        assert args["sanitize_callback"] is custom

    def test_replaces_empty_callback(self, field):
        args = field.filter_setting_args({"settings": "team_members", "sanitize_callback": ""})
        assert args["sanitize_callback"] == field.sanitize

    def test_other_settings_untouched(self, field):
        args = {"settings": "other"}
        assert field.filter_setting_args(args) == {"settings": "other"}

    def test_input_not_mutated(self, field):
        args = {"settings": "team_members"}
        field.filter_setting_args(args)
        assert args == {"settings": "team_members"}


class TestControlArgs:
    def test_sets_control_type(self, field):
        args = field.filter_control_args({"settings": "team_members", "type": "repeater"})
        assert args["type"] == CONTROL_TYPE

    def test_forwards_ui_options(self, field):
        args = field.filter_control_args({"settings": "team_members"})
        assert args["label"] == "Team"
        assert args["button_label"] == "Add member"
        assert args["limit"] == 5
        assert args["row_label"]["field"] == "name"

    def test_caller_options_win(self, field):
        args = field.filter_control_args({"settings": "team_members", "label": "Override"})
        assert args["label"] == "Override"

    def test_fields_are_json_safe(self, field):
        args = field.filter_control_args({"settings": "team_members"})
        assert args["fields"]["name"] == {"type": "text", "label": "Name"}
        assert "sanitizeCallback" not in args["fields"]["slug"]

    def test_other_settings_untouched(self, field):
        assert field.filter_control_args({"settings": "other", "type": "text"}) == {
            "settings": "other",
            "type": "text",
        }


class TestFieldSanitize:
    def test_sanitize_uses_field_schema(self, field):
        value = '[{"name": "<b>Ana</b>", "profile": "javascript:x()", "slug": "Ana B", "age": 3}]'
        assert field.sanitize(value) == [{"name": "Ana", "profile": "", "slug": "anab"}]

    def test_sanitize_via_setting_callback(self, field):
        callback = field.filter_setting_args({"settings": "team_members"})["sanitize_callback"]
        assert callback({"0": {"name": " Bo "}}) == {"0": {"name": "Bo"}}

    def test_custom_sanitizer(self):
        strict = RepeaterSanitizer(allowed_protocols=["https"])
        field = RepeaterField(settings="links", fields={"url": {"type": "url"}}, sanitizer=strict)
        assert field.sanitize({"0": {"url": "http://a.b"}}) == {"0": {"url": ""}}

    def test_requires_settings_id(self):
        with pytest.raises(ValueError):
            RepeaterField(settings="")
