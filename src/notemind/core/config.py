"""
Configuration for notemind.

Priority order:
1. Default values
2. .notemind YAML file (or the file named by NOTEMIND_CONFIG)
3. Environment variables
"""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional, Union, cast

from pydantic import BaseModel, ConfigDict, Field, model_validator

from notemind.core.exceptions import ConfigurationError
from notemind.core.logging import logger
from notemind.core.utils.retry import RetryPolicy


CONFIG_FILE_NAME = ".notemind"

# Env var -> dotted path(s) it overrides
ENV_OVERRIDES: Dict[str, tuple] = {
    "NOTEMIND_LOG_LEVEL": ("logging.level",),
    "NOTEMIND_EMBEDDING_URL": ("embeddings.base_url",),
    "NOTEMIND_EMBEDDING_MODEL": ("embeddings.model",),
    "NOTEMIND_LLM_URL": ("llm.base_url",),
    "NOTEMIND_LLM_MODEL": ("llm.model",),
    "NOTEMIND_API_KEY": ("embeddings.api_key", "llm.api_key"),
    "NOTEMIND_VECTOR_BACKEND": ("vector.backend",),
    "NOTEMIND_WEAVIATE_URL": ("vector.weaviate_url",),
}


class ConfigValidator:
    """
    Configuration validator with rules.

    Validations:
    1. Scores and thresholds inside [0, 1]
    2. Positive sizes, limits and timeouts
    3. Cache eviction target below capacity
    4. http(s) endpoints
    """

    UNIT_INTERVAL_KEYS = (
        "search.similarity_threshold",
        "search.high_similarity_cutoff",
        "search.keyword_weight",
        "search.keyword_min_score",
        "context.high_quality_threshold",
        "context.medium_quality_threshold",
        "validation.strict_match_threshold",
        "validation.min_entity_overlap",
    )

    POSITIVE_KEYS = (
        "embeddings.max_input_chars",
        "embeddings.timeout_seconds",
        "embeddings.cache_ttl_seconds",
        "embeddings.cache_max_size",
        "llm.timeout_seconds",
        "llm.max_tokens",
        "vector.timeout_seconds",
        "search.top_k",
        "search.context_results",
        "cache.ttl_seconds",
        "cache.capacity",
        "cache.target",
        "context.high_quality_limit",
        "context.medium_quality_limit",
        "context.low_quality_limit",
        "chunking.chunk_size",
    )

    def validate_config(self, config: Dict[str, Any]) -> None:
        """
        Validate complete configuration.

        Raises:
            ConfigurationError: On the first rule that fails
        """
        for key in self.UNIT_INTERVAL_KEYS:
            value = _lookup(config, key)
            if value is None:
                continue
            if not isinstance(value, (int, float)) or not 0.0 <= value <= 1.0:
                logger.error("Invalid threshold configuration", key=key, value=value)
                raise ConfigurationError(
                    f"{key} must be a number in [0, 1], got {value!r}",
                    context={"key": key, "value": value},
                )

        for key in self.POSITIVE_KEYS:
            value = _lookup(config, key)
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                logger.error("Invalid size configuration", key=key, value=value)
                raise ConfigurationError(
                    f"{key} must be a positive number, got {value!r}",
                    context={"key": key, "value": value},
                )

        capacity = _lookup(config, "cache.capacity")
        target = _lookup(config, "cache.target")
        if capacity is not None and target is not None and target >= capacity:
            raise ConfigurationError(
                f"cache.target ({target}) must be lower than cache.capacity ({capacity})",
                context={"capacity": capacity, "target": target},
            )

        for key in ("embeddings.base_url", "llm.base_url", "vector.weaviate_url"):
            url = _lookup(config, key)
            if url and not str(url).startswith(("http://", "https://")):
                logger.error("Invalid endpoint configuration", key=key)
                raise ConfigurationError(f"{key} must be an http(s) URL", context={"key": key})


class Settings:
    """
    Main configuration.

    1. Default values
    2. .notemind file
    3. Environment variables
    """

    def __init__(
        self,
        config_path: Optional[Union[str, Path]] = None,
        overrides: Optional[Dict[str, Any]] = None,
        use_env: bool = True,
    ) -> None:
        self._explicit_path = Path(config_path) if config_path else None
        self._use_env = use_env
        self.config = self._load_config()
        if overrides:
            self._deep_merge(self.config, overrides)
        self.validator = ConfigValidator()
        self.validator.validate_config(self.config)
        source = self._find_config_file()
        logger.info("Settings initialized", config_source=str(source) if source else "defaults")

    def _get_default_config(self) -> Dict[str, Any]:
        """Default configuration; every threshold used by retrieval lives here."""
        return {
            "version": "1.0",
            "logging": {"level": "INFO", "file": ".notemind/logs/debug.log", "debug_mode": False},
            "embeddings": {
                "dialect": "openai",
                "base_url": "https://api.openai.com",
                "model": "text-embedding-3-small",
                "api_key": None,
                "max_input_chars": 8000,
                "document_max_chars": 6000,
                "timeout_seconds": 30.0,
                "cache_ttl_seconds": 1800,
                "cache_max_size": 1000,
                "retry": {"max_attempts": 1, "backoff": "exponential", "initial_delay": 0.5},
            },
            "llm": {
                "dialect": "openai",
                "base_url": "https://api.openai.com",
                "model": "gpt-4o-mini",
                "api_key": None,
                "temperature": 0.6,
                "max_tokens": 2000,
                "timeout_seconds": 60.0,
            },
            "vector": {
                "backend": "memory",
                "weaviate_url": "http://localhost:8080",
                "class_name": "NoteChunk",
                "timeout_seconds": 10.0,
            },
            "search": {
                "top_k": 8,
                "similarity_threshold": 0.7,
                "high_similarity_cutoff": 0.7,
                "semantic_boost": 1.3,
                "keyword_weight": 0.3,
                "keyword_min_score": 0.15,
                "context_results": 5,
                "single_flight": True,
                "timeout_seconds": 20.0,
            },
            "cache": {"ttl_seconds": 90, "capacity": 25, "target": 20},
            "context": {
                "high_quality_limit": 2500,
                "medium_quality_limit": 2000,
                "low_quality_limit": 1500,
                "high_quality_threshold": 0.7,
                "medium_quality_threshold": 0.5,
                "snippet_fallback_chars": 300,
                "min_entry_body": 40,
            },
            "validation": {
                "strict_mode": False,
                "strict_match_threshold": 0.8,
                "min_entity_overlap": 0.6,
            },
            "chunking": {"chunk_size": 1000},
        }

    def _find_config_file(self) -> Optional[Path]:
        """
        Find the configuration file.

        Search order:
        1. Path given to the constructor
        2. NOTEMIND_CONFIG
        3. .notemind in the current directory
        """
        if self._explicit_path is not None:
            return self._explicit_path if self._explicit_path.is_file() else None

        env_path = os.getenv("NOTEMIND_CONFIG") if self._use_env else None
        if env_path:
            path = Path(env_path)
            return path if path.is_file() else None

        local_config = Path.cwd() / CONFIG_FILE_NAME
        if local_config.is_file():
            return local_config

        return None

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration in priority order."""
        config = self._get_default_config()

        config_path = self._find_config_file()
        if config_path is not None:
            try:
                with open(config_path, encoding='utf-8') as f:
                    file_config = yaml.safe_load(f)
            except (OSError, yaml.YAMLError) as e:
                logger.error("Error reading configuration file", file=str(config_path), error=str(e))
                raise ConfigurationError(
                    f"Error reading configuration file: {e}",
                    context={"file": str(config_path)},
                    cause=e,
                )
            if file_config:
                if not isinstance(file_config, dict):
                    raise ConfigurationError(
                        "Configuration file must contain a mapping",
                        context={"file": str(config_path)},
                    )
                self._deep_merge(config, file_config)
                logger.debug("Config loaded from file", keys=list(file_config.keys()))

        if self._use_env:
            for env_key, paths in ENV_OVERRIDES.items():
                env_value = os.getenv(env_key)
                if env_value:
                    for dotted in paths:
                        self._set_nested(config, tuple(dotted.split(".")), env_value)

        return config

    def _deep_merge(self, base: Dict[str, Any], update: Dict[str, Any]) -> None:
        """Deep merge of dictionaries."""
        for key, value in update.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(cast(Dict[str, Any], base[key]), cast(Dict[str, Any], value))
            else:
                base[key] = value

    def _set_nested(self, data: Dict[str, Any], path: tuple, value: Any) -> None:
        """Set value at nested path."""
        current = data
        for key in path[:-1]:
            if key not in current or not isinstance(current[key], dict):
                current[key] = {}
            current = current[key]
        current[path[-1]] = value

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value; dotted paths like "cache.ttl_seconds" are supported."""
        value = _lookup(self.config, key)
        return default if value is None else value

    def require(self, key: str) -> Any:
        """
        Get required value or raise exception.

        Useful for values that have no sensible default, like API keys.
        """
        value = _lookup(self.config, key)
        if value is None:
            logger.error("Required config missing", key=key)
            raise ConfigurationError(f"Missing required config: {key}", context={"key": key})
        return value


def _lookup(config: Dict[str, Any], key: str) -> Any:
    current: Any = config
    for part in key.split("."):
        if isinstance(current, dict) and part in current:
            current = current[part]
        else:
            return None
    return current


# ============================================================================
# Typed views over Settings
# ============================================================================


class _ConfigModel(BaseModel):
    model_config = ConfigDict(extra="ignore", validate_assignment=True)


class EmbeddingConfig(_ConfigModel):
    """Embedding provider and embedding cache settings."""

    dialect: str = Field(default="openai", pattern="^(openai|ollama)$")
    base_url: str = "https://api.openai.com"
    model: str = "text-embedding-3-small"
    api_key: Optional[str] = None
    max_input_chars: int = Field(default=8000, gt=0)
    document_max_chars: int = Field(default=6000, gt=0)
    timeout_seconds: float = Field(default=30.0, gt=0)
    cache_ttl_seconds: float = Field(default=1800, gt=0)
    cache_max_size: int = Field(default=1000, gt=0)
    retry: RetryPolicy = Field(default_factory=RetryPolicy)


class LLMConfig(_ConfigModel):
    """Completion endpoint used by ``SearchOrchestrator.answer``."""

    dialect: str = Field(default="openai", pattern="^(openai|ollama)$")
    base_url: str = "https://api.openai.com"
    model: str = "gpt-4o-mini"
    api_key: Optional[str] = None
    temperature: float = Field(default=0.6, ge=0.0, le=2.0)
    max_tokens: int = Field(default=2000, gt=0)
    timeout_seconds: float = Field(default=60.0, gt=0)


class SearchConfig(_ConfigModel):
    """Semantic, keyword and hybrid search parameters."""

    top_k: int = Field(default=8, gt=0)
    similarity_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    high_similarity_cutoff: float = Field(default=0.7, ge=0.0, le=1.0)
    semantic_boost: float = Field(default=1.3, ge=1.0)
    keyword_weight: float = Field(default=0.3, ge=0.0, le=1.0)
    keyword_min_score: float = Field(default=0.15, ge=0.0, le=1.0)
    context_results: int = Field(default=5, gt=0)
    single_flight: bool = True
    timeout_seconds: float = Field(default=20.0, gt=0)
    vector_timeout_seconds: float = Field(default=10.0, gt=0)


class VectorConfig(_ConfigModel):
    """Vector store selection; backend is "memory" or "weaviate"."""

    backend: str = "memory"
    weaviate_url: str = "http://localhost:8080"
    class_name: str = "NoteChunk"
    timeout_seconds: float = Field(default=10.0, gt=0)


class CacheConfig(_ConfigModel):
    """Result cache bounds."""

    ttl_seconds: float = Field(default=90, gt=0)
    capacity: int = Field(default=25, gt=1)
    target: int = Field(default=20, gt=0)

    @model_validator(mode="after")
    def _target_below_capacity(self) -> "CacheConfig":
        if self.target >= self.capacity:
            raise ValueError("cache target must be lower than capacity")
        return self


class ContextConfig(_ConfigModel):
    """Context window budgets by result quality."""

    high_quality_limit: int = Field(default=2500, gt=0)
    medium_quality_limit: int = Field(default=2000, gt=0)
    low_quality_limit: int = Field(default=1500, gt=0)
    high_quality_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    medium_quality_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    snippet_fallback_chars: int = Field(default=300, gt=0)
    min_entry_body: int = Field(default=40, ge=0)


class ValidationConfig(_ConfigModel):
    """Relevance validator thresholds."""

    strict_mode: bool = False
    strict_match_threshold: float = Field(default=0.8, ge=0.0, le=1.0)
    min_entity_overlap: float = Field(default=0.6, ge=0.0, le=1.0)


class RetrievalConfig(_ConfigModel):
    """
    Every tunable used by the retrieval engine, with documented defaults.

    Build it from Settings with ``RetrievalConfig.from_settings(settings)``
    or construct it directly in tests.
    """

    embeddings: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    context: ContextConfig = Field(default_factory=ContextConfig)
    validation: ValidationConfig = Field(default_factory=ValidationConfig)
    vector: VectorConfig = Field(default_factory=VectorConfig)
    chunk_size: int = Field(default=1000, gt=0)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "RetrievalConfig":
        """
        Builds the typed config from Settings (a fresh Settings() if None).

        Raises:
            ConfigurationError: If a section fails validation
        """
        settings = settings or Settings()
        search = dict(settings.get("search", {}))
        search.setdefault("vector_timeout_seconds", settings.get("vector.timeout_seconds", 10.0))
        try:
            return cls(
                embeddings=EmbeddingConfig(**settings.get("embeddings", {})),
                llm=LLMConfig(**settings.get("llm", {})),
                search=SearchConfig(**search),
                cache=CacheConfig(**settings.get("cache", {})),
                context=ContextConfig(**settings.get("context", {})),
                validation=ValidationConfig(**settings.get("validation", {})),
                vector=VectorConfig(**settings.get("vector", {})),
                chunk_size=settings.get("chunking.chunk_size", 1000),
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid retrieval configuration: {e}", cause=e)
