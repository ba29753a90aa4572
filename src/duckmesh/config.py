"""
Configuration Management

This module provides configuration dataclasses and loading functions
for the DuckMesh coordinator.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

import yaml

ZKML_POLICIES = ("accept", "reject")


@dataclass
class SelectionConfig:
    """Configuration for provider selection."""

    heartbeat_window_s: int = 3600
    stake_normalizer: float = 10000.0
    max_stake_multiplier: float = 2.0
    jitter: float = 0.1
    redundancy_count: int = 3
    seed: Optional[int] = None  # None for non-deterministic tie-breaks

    def __post_init__(self):
        if self.heartbeat_window_s <= 0:
            raise ValueError(
                f"heartbeat_window_s must be positive, got {self.heartbeat_window_s}"
            )
        if self.stake_normalizer <= 0:
            raise ValueError(
                f"stake_normalizer must be positive, got {self.stake_normalizer}"
            )
        if self.jitter < 0:
            raise ValueError(f"jitter must be >= 0, got {self.jitter}")
        if self.redundancy_count < 1:
            raise ValueError(
                f"redundancy_count must be >= 1, got {self.redundancy_count}"
            )


@dataclass
class VerificationConfig:
    """Configuration for result verification."""

    similarity_threshold: float = 0.8
    min_redundant_results: int = 2
    min_attestation_length: int = 64
    zkml_policy: str = "accept"

    def __post_init__(self):
        if not 0.0 <= self.similarity_threshold <= 1.0:
            raise ValueError(
                f"similarity_threshold must be in [0, 1], got {self.similarity_threshold}"
            )
        if self.min_redundant_results < 1:
            raise ValueError(
                f"min_redundant_results must be >= 1, got {self.min_redundant_results}"
            )
        if self.zkml_policy not in ZKML_POLICIES:
            raise ValueError(
                f"zkml_policy must be one of {ZKML_POLICIES}, got {self.zkml_policy!r}"
            )


@dataclass
class TransportConfig:
    """Configuration for provider node calls."""

    dispatch_timeout_s: float = 30.0
    result_timeout_s: float = 10.0
    health_timeout_s: float = 5.0
    api_key: Optional[str] = None


@dataclass
class ReferenceConfig:
    """Configuration for the reference inference API."""

    endpoint: str = "https://bedrock-runtime.us-east-1.amazonaws.com"
    api_key: Optional[str] = None
    timeout_s: float = 60.0
    default_max_tokens: int = 1000
    default_temperature: float = 0.7
    model_map: Dict[str, str] = field(default_factory=dict)  # Extra model id mappings


@dataclass
class StorageConfig:
    """Configuration for the spec/result store."""

    root: str = "data"


@dataclass
class LedgerConfig:
    """Configuration for the ledger snapshot used by the CLI."""

    state_file: str = "ledger.yaml"


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"
    format: str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


@dataclass
class DuckmeshConfig:
    """Root configuration for the coordinator."""

    selection: SelectionConfig = field(default_factory=SelectionConfig)
    verification: VerificationConfig = field(default_factory=VerificationConfig)
    transport: TransportConfig = field(default_factory=TransportConfig)
    reference: ReferenceConfig = field(default_factory=ReferenceConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def load(cls, path: Path) -> "DuckmeshConfig":
        """Load configuration from YAML file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path) as f:
            data = yaml.safe_load(f)

        return cls.from_dict(data or {})

    @classmethod
    def from_dict(cls, data: dict) -> "DuckmeshConfig":
        """Create configuration from dictionary."""
        return cls(
            selection=SelectionConfig(**data.get("selection", {})),
            verification=VerificationConfig(**data.get("verification", {})),
            transport=TransportConfig(**data.get("transport", {})),
            reference=ReferenceConfig(**data.get("reference", {})),
            storage=StorageConfig(**data.get("storage", {})),
            ledger=LedgerConfig(**data.get("ledger", {})),
            logging=LoggingConfig(**data.get("logging", {})),
        )

    def apply_env(self, environ: Optional[Dict[str, str]] = None) -> "DuckmeshConfig":
        """Overlay secrets and paths from environment variables."""
        env = os.environ if environ is None else environ

        if env.get("COORDINATOR_API_KEY"):
            self.transport.api_key = env["COORDINATOR_API_KEY"]
        if env.get("REFERENCE_API_KEY"):
            self.reference.api_key = env["REFERENCE_API_KEY"]
        if env.get("REFERENCE_ENDPOINT"):
            self.reference.endpoint = env["REFERENCE_ENDPOINT"]
        if env.get("DUCKMESH_STORAGE_ROOT"):
            self.storage.root = env["DUCKMESH_STORAGE_ROOT"]
        if env.get("DUCKMESH_LOG_LEVEL"):
            self.logging.level = env["DUCKMESH_LOG_LEVEL"]

        return self

    def to_dict(self) -> dict:
        """Convert configuration to dictionary."""
        from dataclasses import asdict

        return asdict(self)

    def save(self, path: Path) -> None:
        """Save configuration to YAML file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)
