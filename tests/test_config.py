"""
Tests for configuration loading.
"""

import pytest

from duckmesh.config import (
    DuckmeshConfig,
    SelectionConfig,
    VerificationConfig,
)


class TestDefaults:
    """Tests for default values."""

    def test_defaults(self):
        config = DuckmeshConfig()
        assert config.selection.heartbeat_window_s == 3600
        assert config.selection.redundancy_count == 3
        assert config.verification.similarity_threshold == 0.8
        assert config.verification.zkml_policy == "accept"
        assert config.transport.dispatch_timeout_s == 30.0
        assert config.transport.result_timeout_s == 10.0
        assert config.transport.health_timeout_s == 5.0


class TestValidation:
    """Tests for __post_init__ checks."""

    def test_bad_threshold(self):
        with pytest.raises(ValueError, match="similarity_threshold"):
            VerificationConfig(similarity_threshold=1.5)

    def test_bad_zkml_policy(self):
        with pytest.raises(ValueError, match="zkml_policy"):
            VerificationConfig(zkml_policy="maybe")

    def test_bad_redundancy_count(self):
        with pytest.raises(ValueError, match="redundancy_count"):
            SelectionConfig(redundancy_count=0)


class TestLoading:
    """Tests for dict/YAML loading."""

    def test_partial_dict(self):
        config = DuckmeshConfig.from_dict(
            {"selection": {"seed": 7}, "reference": {"model_map": {"x": "amazon.x"}}}
        )
        assert config.selection.seed == 7
        assert config.selection.jitter == 0.1
        assert config.reference.model_map == {"x": "amazon.x"}

    def test_save_and_load(self, temp_dir):
        config = DuckmeshConfig.from_dict({"storage": {"root": "/var/duckmesh"}})
        path = temp_dir / "config.yaml"

        config.save(path)
        loaded = DuckmeshConfig.load(path)

        assert loaded == config

    def test_missing_file(self, temp_dir):
        with pytest.raises(FileNotFoundError):
            DuckmeshConfig.load(temp_dir / "nope.yaml")

    def test_env_overlay(self):
        config = DuckmeshConfig().apply_env(
            {
                "COORDINATOR_API_KEY": "coord",
                "REFERENCE_API_KEY": "ref",
                "DUCKMESH_STORAGE_ROOT": "/tmp/store",
                "DUCKMESH_LOG_LEVEL": "DEBUG",
            }
        )
        assert config.transport.api_key == "coord"
        assert config.reference.api_key == "ref"
        assert config.storage.root == "/tmp/store"
        assert config.logging.level == "DEBUG"

    def test_empty_env_leaves_defaults(self):
        config = DuckmeshConfig().apply_env({})
        assert config.transport.api_key is None
