"""Configuration for the routing engine and the application.

``RoutingConfig`` holds the retrieval and decision thresholds and is passed
explicitly into the index and the policy. ``Settings`` reads the deployment
options (provider URL, model, corpus paths) from the environment or ``.env``.
"""

import os
from functools import lru_cache
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PACKAGE_DIR = os.path.abspath(os.path.dirname(__file__))
DATA_DIR = os.path.join(PACKAGE_DIR, "data")

DEFAULT_DOMAIN_CUES = (
    "sgu",
    "swiss german",
    "study program",
    "faculty",
    "lecturer",
    "curriculum",
    "semester",
    "admission",
    "tuition",
    "scholarship",
    "double degree",
    "internship",
    "bachelor",
)


class RoutingConfig(BaseModel):
    """Thresholds and lists used by retrieval and routing.

    All scores are on the ``[0, 1]`` scale. The direct-answer tiers must be
    monotonic (``strong >= normal >= weak``); anything else is rejected when
    the model is constructed.
    """

    model_config = ConfigDict(frozen=True)

    significance_floor: float = Field(default=0.35, ge=0.0, le=1.0, description="Minimum score to appear as a hint")
    relevance_threshold: float = Field(default=0.35, ge=0.0, le=1.0, description="Similarity that marks a query as in-domain")
    strong_threshold: float = Field(default=0.85, ge=0.0, le=1.0)
    normal_threshold: float = Field(default=0.60, ge=0.0, le=1.0)
    weak_threshold: float = Field(default=0.45, ge=0.0, le=1.0)
    max_hints: int = Field(default=3, ge=1)
    allowed_link_domains: Tuple[str, ...] = ("sgu.ac.id",)
    domain_cue_terms: Tuple[str, ...] = DEFAULT_DOMAIN_CUES

    @model_validator(mode="after")
    def _check_tiers(self) -> "RoutingConfig":
        if not (self.strong_threshold >= self.normal_threshold >= self.weak_threshold):
            raise ValueError(
                "direct-answer tiers must satisfy strong >= normal >= weak "
                f"(got {self.strong_threshold}, {self.normal_threshold}, {self.weak_threshold})"
            )
        return self


class Settings(BaseSettings):
    """Application settings loaded from ``SGU_CHAT_*`` variables or ``.env``."""

    model_config = SettingsConfigDict(
        env_prefix="SGU_CHAT_",
        env_file=".env",
        extra="ignore",
        protected_namespaces=(),
    )

    ollama_base_url: str = Field(default="http://localhost:11434", description="Generation provider base URL")
    ollama_api_key: Optional[str] = Field(default=None, description="Bearer token for hosted providers")
    model: str = Field(default="llama3", description="Model identifier sent to the provider")
    temperature: float = Field(default=0.1, ge=0.0, le=2.0)
    request_timeout: int = Field(default=120, ge=1)
    history_window: int = Field(default=10, ge=0, description="Prior turns sent with each generation request")

    faqs_path: str = os.path.join(DATA_DIR, "faqs.json")
    topics_path: str = os.path.join(DATA_DIR, "sgu_topics.json")

    log_level: str = "INFO"

    strong_threshold: float = 0.85
    normal_threshold: float = 0.60
    weak_threshold: float = 0.45
    significance_floor: float = 0.35
    relevance_threshold: float = 0.35
    max_hints: int = 3
    allowed_link_domains: Tuple[str, ...] = ("sgu.ac.id",)
    domain_cue_terms: Tuple[str, ...] = DEFAULT_DOMAIN_CUES

    def routing_config(self) -> RoutingConfig:
        return RoutingConfig(
            significance_floor=self.significance_floor,
            relevance_threshold=self.relevance_threshold,
            strong_threshold=self.strong_threshold,
            normal_threshold=self.normal_threshold,
            weak_threshold=self.weak_threshold,
            max_hints=self.max_hints,
            allowed_link_domains=self.allowed_link_domains,
            domain_cue_terms=self.domain_cue_terms,
        )


@lru_cache()
def get_settings() -> Settings:
    """Return a cached singleton ``Settings`` instance."""
    return Settings()
