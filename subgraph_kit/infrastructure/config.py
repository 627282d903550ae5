"""
Configuration Management for subgraph-kit
Environment-based subgraph configuration with polling defaults

Features:
- Subgraph endpoint config (API key, resource ids, URL templates)
- Environment selection (development/production)
- RPC URL overrides per chain
- Dynamic reload
"""

import os
import logging
from dataclasses import dataclass, field, fields, replace
from typing import Dict, List, Optional
from enum import Enum

from dotenv import load_dotenv

logger = logging.getLogger("SubgraphKit.Config")


class Environment(str, Enum):
    DEVELOPMENT = "development"
    PRODUCTION = "production"


@dataclass
class SchemaMappingConfig:
    """Everything needed to map resource ids to endpoint URLs"""
    api_key: str
    chains_resource_ids: str
    environment: Environment = Environment.DEVELOPMENT
    development_url: Optional[str] = None
    production_url: Optional[str] = None


@dataclass
class SubgraphConfig(SchemaMappingConfig):
    """Schema mapping config plus the codegen queries directory"""
    queries_directory: Optional[str] = None

    def schema_mapping_config(self) -> SchemaMappingConfig:
        """Drop the queries directory, keeping the mapping fields"""
        return SchemaMappingConfig(**{
            f.name: getattr(self, f.name) for f in fields(SchemaMappingConfig)
        })


@dataclass
class SubgraphConfigs:
    """Input of the codegen config generator"""
    subgraphs: List[SubgraphConfig] = field(default_factory=list)


@dataclass
class PollingConfig:
    """Refetch intervals in seconds"""
    block_number_interval: float = 5.0
    subgraph_metadata_interval: float = 10.0


@dataclass
class MonitoringConfig:
    """Logging configuration"""
    log_level: str = "INFO"


@dataclass
class SubgraphKitConfig:
    """Main configuration"""
    environment: Environment = Environment.DEVELOPMENT

    api_key: str = ""
    chains_resource_ids: str = ""
    development_url: Optional[str] = None
    production_url: Optional[str] = None
    queries_directory: Optional[str] = None

    # HTTP
    request_timeout: float = 30.0

    # chain id -> RPC URL overrides
    rpc_urls: Dict[int, str] = field(default_factory=dict)

    polling: PollingConfig = field(default_factory=PollingConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)

    @classmethod
    def from_env(cls) -> "SubgraphKitConfig":
        """Create configuration from environment variables"""
        load_dotenv()

        env = os.environ.get("SUBGRAPH_ENV", "development").lower()

        config = cls(
            environment=Environment(env) if env in [e.value for e in Environment] else Environment.DEVELOPMENT,
            api_key=os.environ.get("SUBGRAPH_API_KEY", ""),
            chains_resource_ids=os.environ.get("SUBGRAPH_CHAINS_RESOURCE_IDS", ""),
            development_url=os.environ.get("SUBGRAPH_DEVELOPMENT_URL") or None,
            production_url=os.environ.get("SUBGRAPH_PRODUCTION_URL") or None,
            queries_directory=os.environ.get("SUBGRAPH_QUERIES_DIRECTORY") or None,
            request_timeout=float(os.environ.get("SUBGRAPH_REQUEST_TIMEOUT", "30")),
        )

        config.polling = PollingConfig(
            block_number_interval=float(os.environ.get("BLOCK_NUMBER_REFETCH_INTERVAL", "5")),
            subgraph_metadata_interval=float(os.environ.get("SUBGRAPH_METADATA_REFETCH_INTERVAL", "10")),
        )

        config.monitoring = MonitoringConfig(
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        )

        # RPC_URL_8453=https://... overrides the public endpoint for that chain
        for key, value in os.environ.items():
            if key.startswith("RPC_URL_") and key[len("RPC_URL_"):].isdigit() and value:
                config.rpc_urls[int(key[len("RPC_URL_"):])] = value

        if config.environment == Environment.PRODUCTION and config.monitoring.log_level == "DEBUG":
            config.monitoring.log_level = "INFO"

        return config

    def subgraph_config(self) -> SubgraphConfig:
        return SubgraphConfig(
            api_key=self.api_key,
            chains_resource_ids=self.chains_resource_ids,
            environment=self.environment,
            development_url=self.development_url,
            production_url=self.production_url,
            queries_directory=self.queries_directory,
        )

    def schema_mapping_config(self) -> SchemaMappingConfig:
        return self.subgraph_config().schema_mapping_config()

    def to_dict(self) -> Dict:
        """Convert to dictionary (hiding secrets)"""
        def sanitize(obj):
            if isinstance(obj, dict):
                return {k: sanitize(v) for k, v in obj.items() if "key" not in str(k).lower()}
            elif hasattr(obj, '__dataclass_fields__'):
                return sanitize({k: getattr(obj, k) for k in obj.__dataclass_fields__})
            elif isinstance(obj, Enum):
                return obj.value
            else:
                return obj

        return sanitize(self)

    def with_environment(self, environment: Environment) -> "SubgraphKitConfig":
        return replace(self, environment=Environment(environment))


def configure_logging(level: str = "INFO"):
    """Configure root logging for CLI and API entry points"""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


# ============================================
# GLOBAL INSTANCE
# ============================================

_config: Optional[SubgraphKitConfig] = None


def get_config() -> SubgraphKitConfig:
    """Get the global configuration (lazy load from environment)"""
    global _config
    if _config is None:
        _config = SubgraphKitConfig.from_env()
        logger.info(f"Configuration loaded for environment: {_config.environment.value}")
    return _config


def reload_config() -> SubgraphKitConfig:
    """Reload configuration from environment"""
    global _config
    _config = SubgraphKitConfig.from_env()
    logger.info("Configuration reloaded")
    return _config
