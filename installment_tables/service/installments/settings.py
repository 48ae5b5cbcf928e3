"""
Engine Settings for the installment table engine.

Constants used by the allocator, the per-installment computation and the
money formatting. They can be adjusted via environment variables, e.g. to
serve a tenant that prices in dollars.

Environment variables use the INSTALLMENTS_ prefix:
    INSTALLMENTS_MIN_OPTION_SLOTS=10
    INSTALLMENTS_LOCALE=en-US
    INSTALLMENTS_CURRENCY=USD

Usage:
    from installment_tables.service.installments.settings import engine_settings

    # Or create custom settings for testing
    custom = EngineSettings(locale="en-US", currency="USD")
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

SUPPORTED_LOCALES = ("pt-BR", "en-US")


class EngineSettings(BaseSettings):
    """
    Configurable parameters for the installment table engine.

    All settings can be overridden via environment variables with INSTALLMENTS_ prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="INSTALLMENTS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Option slots ===
    min_option_slots: int = Field(
        default=10,
        ge=1,
        description="Smallest number of selectable 'Opção' slots offered",
    )

    # === Installment counts ===
    max_installment_count: int = Field(
        default=12,
        ge=1,
        description="Largest number of payments a row may represent",
    )
    default_installment_count: int = Field(
        default=6,
        ge=1,
        description="Installment count of the row a new plan starts with",
    )

    # === Display ===
    locale: str = Field(
        default="pt-BR",
        description="Locale used to format money for display",
    )
    currency: str = Field(
        default="BRL",
        description="ISO currency code used to pick the symbol",
    )

    # === Defaults carried for the plans API ===
    default_legacy_course_type: str = Field(
        default="4",
        description="Course type sent when a record carries none",
    )
    new_option_entry_type: str = Field(
        default="%",
        description="Entry type of a row added by the operator",
    )

    @field_validator("locale")
    @classmethod
    def validate_locale(cls, v: str) -> str:
        if v not in SUPPORTED_LOCALES:
            raise ValueError(f"locale must be one of {SUPPORTED_LOCALES}")
        return v

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        return v.upper()


@lru_cache
def get_engine_settings() -> EngineSettings:
    """Get cached engine settings instance."""
    return EngineSettings()


engine_settings = get_engine_settings()
