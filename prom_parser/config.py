"""Application configuration using Pydantic settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    # App Settings
    debug: bool = False
    log_level: str = "INFO"
    app_host: str = "0.0.0.0"
    app_port: int = 8001

    # Target platform
    base_url: str = "https://prom.ua"
    currency: str = "UAH"

    # ==========================================================================
    # Relay Settings
    # ==========================================================================
    # Each template receives the percent-encoded target URL in {url}
    relay_templates: list[str] = [
        "https://api.allorigins.win/raw?url={url}",
        "https://api.codetabs.com/v1/proxy?quest={url}",
        "https://corsproxy.io/?{url}",
    ]
    relay_timeout_seconds: float = 20.0
    min_response_length: int = 500  # Shorter bodies are placeholder/blocked pages
    block_markers: list[str] = ["captcha", "verify you are human"]
    cache_bust_param: str = "_v"

    # ==========================================================================
    # Crawl Settings
    # ==========================================================================
    page_delay_seconds: float = 1.5  # Fixed delay between category pages
    product_batch_size: int = 3  # Concurrent product scrapes in "products" mode
    hydration_batch_size: int = 5  # Concurrent detail fetches during export

    # Thumbnail URLs are rewritten to this size token
    image_size_token: str = "_w640_h640"

    # ==========================================================================
    # Export Settings
    # ==========================================================================
    default_category_name: str = "General"
    export_shop_name: str = "Exported Data"
    export_company_name: str = "Prom Parser"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


settings = Settings()
