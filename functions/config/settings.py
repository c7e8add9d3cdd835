"""ElementQuote configuration settings.

Loads configuration from environment variables with sensible defaults.
Secrets are loaded via Firebase Secrets Manager (production) or environment variables (emulator).
"""

import os
from typing import Optional
from dataclasses import dataclass, field
from dotenv import load_dotenv

# Load .env file for non-secret configuration (emulator hosts, pricing defaults, etc.)
# Secrets should come from Firebase Secrets Manager or environment variables
load_dotenv()


@dataclass
class Settings:
    """Application settings loaded from environment variables.

    Note: Secrets (OPENAI_API_KEY) should be accessed via config.secrets module,
    not directly from this class. The openai_api_key property delegates to it.
    """

    # LLM Configuration (non-secrets)
    llm_model: str = field(default_factory=lambda: os.getenv("LLM_MODEL", "gpt-4o"))
    llm_temperature: float = field(default_factory=lambda: float(os.getenv("LLM_TEMPERATURE", "0.1")))
    llm_timeout_seconds: int = field(default_factory=lambda: int(os.getenv("LLM_TIMEOUT_SECONDS", "60")))
    llm_max_retries: int = field(default_factory=lambda: int(os.getenv("LLM_MAX_RETRIES", "3")))

    # Firebase Configuration
    firebase_project_id: Optional[str] = field(default_factory=lambda: os.getenv("FIREBASE_PROJECT_ID"))
    use_firebase_emulators: bool = field(default_factory=lambda: os.getenv("USE_FIREBASE_EMULATORS", "false").lower() == "true")
    firestore_emulator_host: str = field(default_factory=lambda: os.getenv("FIRESTORE_EMULATOR_HOST", "localhost:8081"))

    # Pricing Configuration
    vat_standard_percentage: float = field(default_factory=lambda: float(os.getenv("VAT_STANDARD_PERCENTAGE", "25.5")))
    default_commission_percentage: float = field(default_factory=lambda: float(os.getenv("DEFAULT_COMMISSION_PERCENTAGE", "4.0")))
    at_risk_margin_threshold: float = field(default_factory=lambda: float(os.getenv("AT_RISK_MARGIN_THRESHOLD", "5.0")))
    pricing_cache_size: int = field(default_factory=lambda: int(os.getenv("PRICING_CACHE_SIZE", "128")))
    transport_rate_per_km: float = field(default_factory=lambda: float(os.getenv("TRANSPORT_RATE_PER_KM", "2.20")))

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    # Internal: cached secret value (use openai_api_key property instead)
    _openai_api_key: Optional[str] = field(default=None, repr=False)

    @property
    def openai_api_key(self) -> Optional[str]:
        """Get OpenAI API key from Firebase Secrets Manager or environment."""
        if self._openai_api_key is None:
            from config.secrets import get_openai_api_key
            self._openai_api_key = get_openai_api_key()
        return self._openai_api_key

    def validate(self) -> None:
        """Validate required settings are present.

        Raises:
            ValueError: If required settings are missing or out of range.
        """
        if not self.openai_api_key and not self.use_firebase_emulators:
            raise ValueError("OPENAI_API_KEY is required in production")
        if self.vat_standard_percentage < 0:
            raise ValueError("VAT_STANDARD_PERCENTAGE must be >= 0")
        if self.pricing_cache_size < 0:
            raise ValueError("PRICING_CACHE_SIZE must be >= 0")

    @property
    def is_emulator_mode(self) -> bool:
        """Check if running in emulator mode."""
        return self.use_firebase_emulators


# Singleton settings instance
settings = Settings()
