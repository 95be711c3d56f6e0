"""Process configuration.

Built once from the environment at the Functions entrypoints and passed
down explicitly; nothing below this module reads ``os.environ``.
"""
import os
import tempfile
from functools import lru_cache
from pathlib import Path
from typing import Callable, Literal, Mapping, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from src.specs.common.errors import ConfigurationError

T = TypeVar("T")

_DEFAULT_STATE_DIR = Path(tempfile.gettempdir()) / "smartportfolio-runtime"


def _env_number(env: Mapping[str, str], name: str, default: T, cast: Callable[[str], T]) -> T:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw.strip())
    except ValueError as exc:
        raise ConfigurationError(
            f"Environment variable {name} must be a number, got '{raw}'",
            details={"variable": name},
        ) from exc


def _env_flag(env: Mapping[str, str], name: str) -> bool:
    return (env.get(name) or "").strip().lower() in ("1", "true", "yes")


class AppConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    githubToken: Optional[str] = None
    behanceApiKey: Optional[str] = None
    dribbbleAccessToken: Optional[str] = None

    projectEndpoint: Optional[str] = None
    modelDeploymentName: Optional[str] = None
    seoAgentName: str = "SmartPortfolioSeoWriter"
    disableManagedIdentity: bool = False

    httpTimeout: float = Field(default=15.0, gt=0)
    platformTimeout: float = Field(default=45.0, gt=0)
    enrichmentTimeout: float = Field(default=60.0, gt=0)
    maxPlatformConcurrency: int = Field(default=3, ge=1)
    seoBatchSize: int = Field(default=5, ge=1)
    seoBatchPause: float = Field(default=1.0, ge=0)

    storeBackend: Literal["auto", "cosmos", "file"] = "auto"
    cosmosConnectionString: Optional[str] = None
    cosmosDbName: Optional[str] = None
    stateDir: Path = _DEFAULT_STATE_DIR

    autoSyncQueue: str = "portfolio-sync"

    @property
    def cosmos_configured(self) -> bool:
        return bool(self.cosmosConnectionString and self.cosmosDbName)

    @property
    def ai_configured(self) -> bool:
        return bool(self.projectEndpoint and self.modelDeploymentName)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "AppConfig":
        env = os.environ if env is None else env
        backend = (env.get("PORTFOLIO_STORE_BACKEND") or "auto").strip().lower()
        if backend not in ("auto", "cosmos", "file"):
            raise ConfigurationError(
                f"PORTFOLIO_STORE_BACKEND must be one of auto, cosmos, file; got '{backend}'",
                details={"variable": "PORTFOLIO_STORE_BACKEND"},
            )
        try:
            return cls(
                githubToken=env.get("GITHUB_TOKEN") or None,
                behanceApiKey=env.get("BEHANCE_API_KEY") or None,
                dribbbleAccessToken=env.get("DRIBBBLE_ACCESS_TOKEN") or env.get("DRIBBBLE_API_KEY") or None,
                projectEndpoint=env.get("PROJECT_ENDPOINT") or None,
                modelDeploymentName=env.get("MODEL_DEPLOYMENT_NAME") or None,
                seoAgentName=env.get("SEO_AGENT_NAME") or "SmartPortfolioSeoWriter",
                disableManagedIdentity=_env_flag(env, "AZURE_IDENTITY_DISABLE_MANAGED_IDENTITY"),
                httpTimeout=_env_number(env, "UPSTREAM_HTTP_TIMEOUT", 15.0, float),
                platformTimeout=_env_number(env, "PLATFORM_SYNC_TIMEOUT", 45.0, float),
                enrichmentTimeout=_env_number(env, "ENRICHMENT_TIMEOUT", 60.0, float),
                maxPlatformConcurrency=_env_number(env, "MAX_PLATFORM_CONCURRENCY", 3, int),
                seoBatchSize=_env_number(env, "SEO_BATCH_SIZE", 5, int),
                seoBatchPause=_env_number(env, "SEO_BATCH_PAUSE", 1.0, float),
                storeBackend=backend,
                cosmosConnectionString=env.get("COSMOS_DB_CONNECTION_STRING") or None,
                cosmosDbName=env.get("COSMOS_DB_NAME") or None,
                stateDir=Path(env.get("RUNTIME_STATE_DIR") or str(_DEFAULT_STATE_DIR)),
                autoSyncQueue=env.get("AUTO_SYNC_QUEUE") or "portfolio-sync",
            )
        except ValueError as exc:
            # pydantic ValidationError is a ValueError
            raise ConfigurationError(f"Invalid configuration: {exc}") from exc


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Process-wide configuration for the Functions entrypoints."""
    return AppConfig.from_env()


__all__ = ["AppConfig", "get_config"]
