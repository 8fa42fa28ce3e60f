"""
Runtime Configuration

Central configuration for the hash engine, tree construction and logging.
The hash engine is the only setting that changes hashes; everything else
is a performance or diagnostics knob.
"""

from __future__ import annotations

import copy
import os
from dataclasses import dataclass, field
from typing import Any, Optional

from dotenv import load_dotenv

from merklekit.crypto.hashing import HashAlgorithm, HashEngine
from merklekit.schemas.errors import ConfigurationError

load_dotenv()


def _parse_prefix(value: str, setting: str) -> bytes:
    if not isinstance(value, str):
        raise ConfigurationError(
            f"Domain prefix must be a hex string, got {type(value).__name__}",
            setting=setting,
        )
    raw = value[2:] if value.startswith("0x") else value
    try:
        prefix = bytes.fromhex(raw)
    except ValueError as e:
        raise ConfigurationError(
            f"Domain prefix must be hex, got {value!r}", setting=setting
        ) from e
    if not prefix:
        raise ConfigurationError("Domain prefix must not be empty", setting=setting)
    return prefix


@dataclass
class HashConfig:
    """Configuration for the domain-separated hash engine."""
    algorithm: str = HashAlgorithm.SHA256.value
    leaf_prefix: str = "00"
    node_prefix: str = "01"

    def build_engine(self) -> HashEngine:
        """Construct the HashEngine described by this config."""
        if not isinstance(self.algorithm, str):
            raise ConfigurationError(
                f"Hash algorithm must be a string, got {type(self.algorithm).__name__}",
                setting="hash.algorithm",
            )
        try:
            algorithm = HashAlgorithm(self.algorithm.lower())
        except ValueError as e:
            raise ConfigurationError(
                f"Unsupported hash algorithm: {self.algorithm}",
                setting="hash.algorithm",
            ) from e
        leaf_prefix = _parse_prefix(self.leaf_prefix, "hash.leaf_prefix")
        node_prefix = _parse_prefix(self.node_prefix, "hash.node_prefix")
        if leaf_prefix == node_prefix:
            raise ConfigurationError(
                "Leaf and node domain prefixes must differ",
                setting="hash.node_prefix",
            )
        return HashEngine(
            algorithm=algorithm,
            leaf_prefix=leaf_prefix,
            node_prefix=node_prefix,
        )


@dataclass
class TreeConfig:
    """Configuration for dense Merkle tree construction."""
    # Layers with at least this many nodes are hashed on a thread pool
    parallel_threshold: int = 4096
    max_workers: Optional[int] = None


@dataclass
class SparseTreeConfig:
    """Configuration for sparse Merkle trees."""
    default_depth: int = 256


@dataclass
class LoggingConfig:
    """Configuration for library logging."""
    level: str = "WARNING"


@dataclass
class RuntimeConfig:
    """
    Complete runtime configuration for merklekit.

    Can be loaded from:
    - Environment variables (a .env file is honoured via python-dotenv)
    - A plain dictionary
    - Programmatic construction
    """
    hash: HashConfig = field(default_factory=HashConfig)
    tree: TreeConfig = field(default_factory=TreeConfig)
    smt: SparseTreeConfig = field(default_factory=SparseTreeConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    extra: dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def _get_env_overrides() -> dict[str, Any]:
        """
        Get configuration overrides from environment variables.

        This is the SINGLE source of truth for all env var reading.

        Supported variables:
        - MERKLEKIT_HASH_ALGORITHM: sha256, sha3_256, blake2b or blake2s
        - MERKLEKIT_LEAF_PREFIX: hex domain tag for leaves
        - MERKLEKIT_NODE_PREFIX: hex domain tag for internal nodes
        - MERKLEKIT_PARALLEL_THRESHOLD: layer size that enables threaded builds
        - MERKLEKIT_MAX_WORKERS: thread pool size for threaded builds
        - MERKLEKIT_SMT_DEPTH: default sparse tree depth
        - MERKLEKIT_LOG_LEVEL: log level for setup_logging()
        """
        overrides: dict[str, Any] = {}

        # Hash engine
        if os.getenv("MERKLEKIT_HASH_ALGORITHM"):
            overrides.setdefault("hash", {})["algorithm"] = os.getenv("MERKLEKIT_HASH_ALGORITHM")
        if os.getenv("MERKLEKIT_LEAF_PREFIX"):
            overrides.setdefault("hash", {})["leaf_prefix"] = os.getenv("MERKLEKIT_LEAF_PREFIX")
        if os.getenv("MERKLEKIT_NODE_PREFIX"):
            overrides.setdefault("hash", {})["node_prefix"] = os.getenv("MERKLEKIT_NODE_PREFIX")

        # Tree construction
        if os.getenv("MERKLEKIT_PARALLEL_THRESHOLD"):
            overrides.setdefault("tree", {})["parallel_threshold"] = _env_int(
                "MERKLEKIT_PARALLEL_THRESHOLD"
            )
        if os.getenv("MERKLEKIT_MAX_WORKERS"):
            overrides.setdefault("tree", {})["max_workers"] = _env_int("MERKLEKIT_MAX_WORKERS")

        # Sparse trees
        if os.getenv("MERKLEKIT_SMT_DEPTH"):
            overrides.setdefault("smt", {})["default_depth"] = _env_int("MERKLEKIT_SMT_DEPTH")

        # Logging
        if os.getenv("MERKLEKIT_LOG_LEVEL"):
            overrides.setdefault("logging", {})["level"] = os.getenv("MERKLEKIT_LOG_LEVEL")

        return overrides

    @classmethod
    def from_env(cls) -> "RuntimeConfig":
        """
        Load configuration purely from environment variables.

        Uses defaults for any values not specified in env vars.
        """
        return cls.from_dict(cls._get_env_overrides())

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RuntimeConfig":
        """Load configuration from a dictionary (supports partial data)."""
        try:
            hash_config = HashConfig(**data.get("hash", {}))
            tree = TreeConfig(**data.get("tree", {}))
            smt = SparseTreeConfig(**data.get("smt", {}))
            logging_config = LoggingConfig(**data.get("logging", {}))
        except TypeError as e:
            raise ConfigurationError(f"Unknown configuration key: {e}") from e

        config = cls(
            hash=hash_config,
            tree=tree,
            smt=smt,
            logging=logging_config,
            extra=data.get("extra", {}),
        )
        config.validate()
        return config

    def validate(self) -> None:
        """Raise ConfigurationError if any setting is out of range."""
        self.hash.build_engine()
        if self.tree.parallel_threshold < 2:
            raise ConfigurationError(
                "parallel_threshold must be at least 2",
                setting="tree.parallel_threshold",
            )
        if self.tree.max_workers is not None and self.tree.max_workers < 1:
            raise ConfigurationError(
                "max_workers must be positive",
                setting="tree.max_workers",
            )
        if self.smt.default_depth < 1:
            raise ConfigurationError(
                "Sparse tree depth must be positive",
                setting="smt.default_depth",
            )

    def with_env_overrides(self) -> "RuntimeConfig":
        """
        Return a new config with environment variable overrides applied.

        This allows programmatic construction first, then overlaying env vars.
        """
        overrides = self._get_env_overrides()
        if not overrides:
            return self

        new_config = copy.deepcopy(self)
        for section, values in overrides.items():
            target = getattr(new_config, section)
            for key, value in values.items():
                setattr(target, key, value)

        new_config.validate()
        return new_config

    def build_engine(self) -> HashEngine:
        return self.hash.build_engine()

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to a dictionary."""
        return {
            "hash": {
                "algorithm": self.hash.algorithm,
                "leaf_prefix": self.hash.leaf_prefix,
                "node_prefix": self.hash.node_prefix,
            },
            "tree": {
                "parallel_threshold": self.tree.parallel_threshold,
                "max_workers": self.tree.max_workers,
            },
            "smt": {
                "default_depth": self.smt.default_depth,
            },
            "logging": {
                "level": self.logging.level,
            },
            "extra": self.extra,
        }


def _env_int(name: str) -> int:
    value = os.getenv(name, "")
    try:
        return int(value)
    except ValueError as e:
        raise ConfigurationError(
            f"{name} must be an integer, got {value!r}", setting=name
        ) from e


# Global default configuration
_default_config: Optional[RuntimeConfig] = None
_default_engine: Optional[HashEngine] = None


def get_default_config() -> RuntimeConfig:
    """Get the default runtime configuration."""
    global _default_config
    if _default_config is None:
        _default_config = RuntimeConfig.from_env()
    return _default_config


def set_default_config(config: RuntimeConfig) -> None:
    """Set the default runtime configuration."""
    global _default_config, _default_engine
    config.validate()
    _default_config = config
    _default_engine = None


def get_default_engine() -> HashEngine:
    """HashEngine of the default configuration, built once."""
    global _default_engine
    if _default_engine is None:
        _default_engine = get_default_config().build_engine()
    return _default_engine
