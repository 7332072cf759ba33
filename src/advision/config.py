from __future__ import annotations

import logging

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Loads keys from process env, and also from a local .env file for convenience.
    model_config = SettingsConfigDict(env_prefix="", extra="ignore", env_file=".env", env_file_encoding="utf-8")

    # Keys. The image credential can also be supplied per session and is never stored.
    gemini_api_key: str | None = None
    openai_api_key: str | None = None

    # Models
    gemini_vision_model: str = "gemini-2.0-flash"
    gemini_text_model: str = "gemini-2.0-flash"
    openai_text_model: str = "gpt-4.1-mini"
    openai_image_model: str = "dall-e-3"

    # "openai" or "gemini"; used for copy, prompt synthesis and refinement.
    text_provider: str = "openai"

    # Generation
    max_variations: int = 10
    provider_max_retries: int = 3
    provider_retry_base_delay: float = 1.0

    log_level: str = "INFO"

    # Output formats
    default_output_format: str = "Instagram Post"
    default_ad_size: tuple[int, int] = (1024, 1024)
    ad_sizes: dict[str, tuple[int, int]] = {
        "Instagram Post": (1080, 1080),
        "Instagram Story": (1080, 1920),
        "Facebook Post": (1200, 630),
        "Twitter Post": (1080, 1080),
        "LinkedIn Post": (1200, 627),
        "Email Banner": (600, 200),
        "Website Banner (Wide)": (728, 90),
        "Website Banner (Skyscraper)": (160, 600),
        "JS": (300, 250),
    }


settings = Settings()


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
