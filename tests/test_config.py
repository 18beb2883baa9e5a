"""Tests for form-builder configuration."""

import pytest

from form_builder import config as config_module
from form_builder.builder import FormBuilder
from form_builder.config import FormBuilderConfig, get_config, update_config
from form_builder.models import FormSchema


class TestFormBuilderConfig:
    """Tests for FormBuilderConfig."""

    def test_defaults(self, monkeypatch):
        """Test defaults when no environment variables are set."""
        for name in (
            "FORM_BUILDER_DEFAULT_TITLE",
            "FORM_BUILDER_SHOW_PROGRESS_BAR",
            "FORM_BUILDER_ID_LENGTH",
            "FORM_BUILDER_LOG_LEVEL",
        ):
            monkeypatch.delenv(name, raising=False)
        cfg = FormBuilderConfig.from_env()
        assert cfg.default_title == "Untitled Form"
        assert cfg.default_show_progress_bar is True
        assert cfg.id_length == 9
        assert cfg.log_level == "INFO"

    def test_from_env(self, monkeypatch):
        """Test environment variables override defaults."""
        monkeypatch.setenv("FORM_BUILDER_DEFAULT_TITLE", "New Survey")
        monkeypatch.setenv("FORM_BUILDER_SHOW_PROGRESS_BAR", "false")
        monkeypatch.setenv("FORM_BUILDER_ID_LENGTH", "12")
        monkeypatch.setenv("FORM_BUILDER_LOG_LEVEL", "debug")
        cfg = FormBuilderConfig.from_env()
        assert cfg.default_title == "New Survey"
        assert cfg.default_show_progress_bar is False
        assert cfg.id_length == 12
        assert cfg.log_level == "DEBUG"


class TestUpdateConfig:
    """Tests for update_config."""

    @pytest.fixture(autouse=True)
    def restore(self, monkeypatch):
        monkeypatch.setattr(config_module, "config", FormBuilderConfig())

    def test_update_known_keys(self):
        """Test updates apply to the shared config."""
        update_config(default_title="Feedback", not_a_setting=1)
        assert get_config().default_title == "Feedback"
        assert not hasattr(get_config(), "not_a_setting")

    def test_defaults_flow_into_new_schemas(self):
        """Test new schemas and ids pick up the config."""
        update_config(default_title="Feedback", id_length=6)
        assert FormSchema.default().title == "Feedback"
        builder = FormBuilder()
        assert builder.schema.title == "Feedback"
        assert len(builder.add_field("text")) == 6
