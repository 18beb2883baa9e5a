"""
Configuration module for form-builder.

Handles environment variables and default settings.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_flag(name: str, default: bool) -> bool:
    return os.getenv(name, str(default).lower()).lower() == "true"


@dataclass
class FormBuilderConfig:
    """Configuration settings for form-builder."""

    # New schema defaults
    default_title: str = "Untitled Form"
    default_description: str = "Form description"
    default_confirmation_message: str = "Thank you for your submission!"
    default_show_progress_bar: bool = True
    default_show_page_titles: bool = True

    # Generated field and option ids
    id_length: int = 9

    # Visibility memoization (0 disables the cache)
    visibility_cache_size: int = 128

    # Output settings
    indent_json_output: int = 2
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "FormBuilderConfig":
        """
        Create configuration from environment variables.

        If an environment variable is not set, uses the class field default value.
        """
        _defaults = cls()

        return cls(
            default_title=os.getenv("FORM_BUILDER_DEFAULT_TITLE", _defaults.default_title),
            default_description=os.getenv("FORM_BUILDER_DEFAULT_DESCRIPTION", _defaults.default_description),
            default_confirmation_message=os.getenv(
                "FORM_BUILDER_CONFIRMATION_MESSAGE", _defaults.default_confirmation_message
            ),
            default_show_progress_bar=_env_flag("FORM_BUILDER_SHOW_PROGRESS_BAR", _defaults.default_show_progress_bar),
            default_show_page_titles=_env_flag("FORM_BUILDER_SHOW_PAGE_TITLES", _defaults.default_show_page_titles),
            id_length=int(os.getenv("FORM_BUILDER_ID_LENGTH", str(_defaults.id_length))),
            visibility_cache_size=int(
                os.getenv("FORM_BUILDER_VISIBILITY_CACHE_SIZE", str(_defaults.visibility_cache_size))
            ),
            indent_json_output=int(os.getenv("FORM_BUILDER_INDENT_JSON", str(_defaults.indent_json_output))),
            log_level=os.getenv("FORM_BUILDER_LOG_LEVEL", _defaults.log_level).upper(),
        )


config = FormBuilderConfig.from_env()


def get_config() -> FormBuilderConfig:
    """Get the current configuration."""
    return config


def update_config(**kwargs) -> FormBuilderConfig:
    """Update configuration settings."""
    global config
    for key, value in kwargs.items():
        if hasattr(config, key):
            setattr(config, key, value)
    return config
