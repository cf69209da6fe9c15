"""Configuration management for repo-forge."""

import os
import re
from pathlib import Path
from typing import Optional, Dict, Any
from pydantic import BaseModel, Field, field_validator
from dotenv import load_dotenv
import yaml


# Fedora-style PID namespace: letters, digits, dots and dashes
NAMESPACE_PATTERN = re.compile(r'^[A-Za-z0-9.\-]+$')


class Neo4jConfig(BaseModel):
    """Neo4j connection configuration."""
    uri: str = Field(default="bolt://localhost:7687")
    username: str = Field(default="neo4j")
    password: str = Field(default="password")
    database: str = Field(default="neo4j")


class RepositoryConfig(BaseModel):
    """Repository store configuration."""
    backend: str = Field(default="neo4j")
    policy_dsid: str = Field(default="COLLECTION_POLICY")

    @field_validator('backend')
    @classmethod
    def validate_backend(cls, v):
        """Validate store backend name."""
        valid_backends = ["neo4j", "memory"]
        if v.lower() not in valid_backends:
            raise ValueError(f"Repository backend must be one of {valid_backends}")
        return v.lower()


class IngestConfig(BaseModel):
    """Batch ingest behaviour."""
    items_per_step: int = Field(default=10, ge=1)
    commit_immediately: bool = Field(default=True)
    preallocate_identifiers: bool = Field(default=True)
    commit_workers: int = Field(default=1, ge=1)
    transform: str = Field(default="mods_to_dc")
    control_group: str = Field(default="M")
    primary_label: str = Field(default="MODS Record")
    derived_label: str = Field(default="DC Record")
    keep_artifacts: bool = Field(default=False)
    temp_dir: Optional[str] = Field(default=None)

    @field_validator('control_group')
    @classmethod
    def validate_control_group(cls, v):
        """Validate datastream control group (Inline, Managed, External, Redirect)."""
        if v.upper() not in ["X", "M", "E", "R"]:
            raise ValueError("Control group must be one of X, M, E, R")
        return v.upper()


class AppConfig(BaseModel):
    """Application configuration."""
    log_level: str = Field(default="INFO")
    log_file: Optional[str] = Field(default=None, description="Operator log for warnings and failures")
    default_namespace: str = Field(default="ir")

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v.upper()

    @field_validator('default_namespace')
    @classmethod
    def validate_namespace(cls, v):
        """Validate PID namespace format."""
        if not NAMESPACE_PATTERN.match(v):
            raise ValueError("Namespace may only contain letters, digits, '.' and '-'")
        return v


class Settings(BaseModel):
    """Main configuration class."""
    neo4j: Neo4jConfig = Field(default_factory=Neo4jConfig)
    repository: RepositoryConfig = Field(default_factory=RepositoryConfig)
    ingest: IngestConfig = Field(default_factory=IngestConfig)
    app: AppConfig = Field(default_factory=AppConfig)

    @classmethod
    def load_config(cls, config_overrides: Optional[Dict[str, Any]] = None) -> "Settings":
        """
        Load configuration from multiple sources with proper precedence:
        1. Command-line arguments (highest priority)
        2. YAML configuration file
        3. Environment variables
        4. .env file values
        5. Default values (lowest priority)
        """
        load_dotenv()

        yaml_config = cls._load_yaml_config()

        config_data = {}

        env_config = cls._load_env_config()
        config_data = cls._merge_config(config_data, env_config)

        if yaml_config:
            config_data = cls._merge_config(config_data, yaml_config)

        if config_overrides:
            config_data = cls._merge_config(config_data, config_overrides)

        return cls(**config_data)

    @classmethod
    def _load_yaml_config(cls) -> Optional[Dict[str, Any]]:
        """Load configuration from YAML file."""
        config_paths = [
            Path("./repo_forge.yaml"),
            Path("./config.yaml"),
            Path.home() / ".repo_forge.yaml"
        ]

        for config_path in config_paths:
            if config_path.exists():
                try:
                    with open(config_path, 'r') as f:
                        return yaml.safe_load(f)
                except yaml.YAMLError as e:
                    raise ValueError(f"Error parsing YAML config file {config_path}: {e}")
                except Exception as e:
                    raise ValueError(f"Error reading config file {config_path}: {e}")

        return None

    @classmethod
    def _load_env_config(cls) -> Dict[str, Any]:
        """Load configuration from environment variables."""
        config = {}

        neo4j_config = {}
        if os.getenv("NEO4J_URI"):
            neo4j_config["uri"] = os.getenv("NEO4J_URI")
        if os.getenv("NEO4J_USERNAME"):
            neo4j_config["username"] = os.getenv("NEO4J_USERNAME")
        if os.getenv("NEO4J_PASSWORD"):
            neo4j_config["password"] = os.getenv("NEO4J_PASSWORD")
        if os.getenv("NEO4J_DATABASE"):
            neo4j_config["database"] = os.getenv("NEO4J_DATABASE")
        if neo4j_config:
            config["neo4j"] = neo4j_config

        repository_config = {}
        if os.getenv("REPOSITORY_BACKEND"):
            repository_config["backend"] = os.getenv("REPOSITORY_BACKEND")
        if os.getenv("REPOSITORY_POLICY_DSID"):
            repository_config["policy_dsid"] = os.getenv("REPOSITORY_POLICY_DSID")
        if repository_config:
            config["repository"] = repository_config

        ingest_config = {}
        if os.getenv("INGEST_ITEMS_PER_STEP"):
            ingest_config["items_per_step"] = os.getenv("INGEST_ITEMS_PER_STEP")
        if os.getenv("INGEST_COMMIT_IMMEDIATELY"):
            ingest_config["commit_immediately"] = os.getenv("INGEST_COMMIT_IMMEDIATELY")
        if os.getenv("INGEST_TRANSFORM"):
            ingest_config["transform"] = os.getenv("INGEST_TRANSFORM")
        if ingest_config:
            config["ingest"] = ingest_config

        app_config = {}
        if os.getenv("LOG_LEVEL"):
            app_config["log_level"] = os.getenv("LOG_LEVEL")
        if os.getenv("LOG_FILE"):
            app_config["log_file"] = os.getenv("LOG_FILE")
        if os.getenv("DEFAULT_NAMESPACE"):
            app_config["default_namespace"] = os.getenv("DEFAULT_NAMESPACE")
        if app_config:
            config["app"] = app_config

        return config

    @classmethod
    def _merge_config(cls, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Merge configuration dictionaries recursively."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = cls._merge_config(result[key], value)
            else:
                result[key] = value

        return result

    def validate_namespace(self, namespace: str) -> str:
        """Validate namespace format."""
        if not NAMESPACE_PATTERN.match(namespace):
            raise ValueError("Namespace may only contain letters, digits, '.' and '-'")
        return namespace


def get_settings(config_overrides: Optional[Dict[str, Any]] = None) -> Settings:
    """Get application settings with optional overrides."""
    return Settings.load_config(config_overrides)
