"""Application configuration management using Pydantic Settings."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    Required settings will raise validation errors if not provided.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="storefront-checkout", description="Application name")
    app_env: str = Field(default="development", description="Environment (development/staging/production)")
    debug: bool = Field(default=False, description="Enable debug mode")

    # Server
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8080, description="Server port")

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000",
        description="Comma-separated list of allowed CORS origins",
    )

    # Commerce backend (WooCommerce REST)
    woocommerce_rest_api_url: str = Field(..., description="WooCommerce REST API base URL (…/wp-json/wc/v3)")
    woocommerce_consumer_key: str = Field(default="", description="WooCommerce consumer key")
    woocommerce_consumer_secret: str = Field(default="", description="WooCommerce consumer secret")
    shipping_options_path: str = Field(
        default="/options/shipping",
        description="Path (relative to the REST base URL) serving the shipping options table",
    )

    # Stripe
    stripe_secret_key: str = Field(default="", description="Stripe secret API key")
    stripe_publishable_key: str = Field(default="", description="Stripe publishable key (client-side confirmation)")
    currency: str = Field(default="usd", description="The single currency every order is charged in")
    payment_method_types: str = Field(
        default="card,klarna",
        description="Comma-separated payment method types offered on the PaymentIntent",
    )

    # Storefront
    site_url: str = Field(default="http://localhost:3000", description="Public storefront URL")
    thankyou_path: str = Field(default="/thankyou", description="Path the payment processor returns to")
    storefront_api_url: str = Field(
        default="http://localhost:8080/api/v1",
        description="Base URL of this API as seen by the checkout engine",
    )
    state_dir: Path = Field(default=Path(".storefront-state"), description="Directory for persisted client state")

    # Timing
    request_timeout_seconds: float = Field(default=15.0, gt=0, description="Timeout for backend calls")
    payment_confirmation_timeout_seconds: float = Field(
        default=60.0, gt=0, description="Timeout for a single payment confirmation"
    )
    shipping_debounce_seconds: float = Field(
        default=0.3, ge=0, description="Debounce applied to shipping address edits"
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins string into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def payment_method_types_list(self) -> list[str]:
        """Parse payment method types string into a list."""
        return [m.strip() for m in self.payment_method_types.split(",") if m.strip()]

    @property
    def return_url(self) -> str:
        """URL the payment processor redirects back to after confirmation."""
        return f"{self.site_url.rstrip('/')}{self.thankyou_path}"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == "production"

    @property
    def is_stripe_test_mode(self) -> bool:
        """Check if using Stripe test keys."""
        return self.stripe_secret_key.startswith("sk_test_")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton.

    Returns:
        Settings: Application settings instance.

    Note:
        Settings are cached using lru_cache for performance.
        Call get_settings.cache_clear() to reload settings.
    """
    return Settings()
