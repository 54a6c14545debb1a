from functools import lru_cache
from typing import Literal
import os
from pydantic_settings import BaseSettings, SettingsConfigDict

EnvName = Literal["development", "production"]

def _env_file_for(app_env: EnvName) -> str:
    return ".env.development" if app_env == "development" else ".env.production"

class Settings(BaseSettings):

    # Core
    APP_ENV: EnvName = "development"
    APP_NAME: str = "ShopSearch"
    DEBUG: bool = False
    GIT_SHA: str = "unknown"

    # Mongo (products index source, catalog and orders)
    MONGO_URI: str = ""
    MONGO_DB: str = "marketplace"
    SEARCH_INDEX: str = "product_search"        # Atlas Search index on the products collection
    products_collection: str = "products"
    orders_collection: str = "orders"

    # Redis
    REDIS_URL: str = ""

    # Cache config
    search_cache_ttl: int = 10 * 60               # 10 minutes
    autocomplete_cache_ttl: int = 60 * 60         # 1 hour
    related_cache_ttl: int = 60 * 60             # 1 hour

    # Search
    default_page_size: int = 20
    max_page_size: int = 100
    facet_terms_size: int = 50
    facet_tags_size: int = 20
    fuzzy_max_edits: int = 1

    # Autocomplete
    autocomplete_min_length: int = 2
    autocomplete_fallback_limit: int = 5

    # Similarity strategies
    behavior_history_size: int = 20
    personal_history_size: int = 200           # purchase lines read by the "category" personalized list
    behavior_price_band: float = 50.0
    behavior_boost: float = 1.2
    vendor_score: float = 0.4
    collab_max_buyers: int = 100
    collab_max_purchases: int = 500
    normalize_strategy_scores: bool = True

    # Per sub-call timeouts (seconds); a timeout degrades like an error
    facet_timeout_s: float = 2.0
    strategy_timeout_s: float = 2.0
    autocomplete_timeout_s: float = 1.0

    # API
    ALLOWED_ORIGINS: str = ""

    # pydantic-settings config will be set dynamically in the factory below
    model_config = SettingsConfigDict(env_file=None, case_sensitive=True)

@lru_cache
def get_settings() -> Settings:
    """
    Factory that chooses the right .env file based on APP_ENV.
    Cache makes it cheap to inject via FastAPI dependencies.
    """
    app_env: EnvName = os.getenv("APP_ENV", "development")  # earliest switch
    env_file = _env_file_for(app_env)
    return Settings(
                _env_file=env_file,  # load .env.development or .env.production
                _env_file_encoding="utf-8"
    )
