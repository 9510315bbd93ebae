"""Unit tests for harness configuration loading."""

from __future__ import annotations

import pytest
import yaml

from scaffold_e2e.config import (
    DEFAULT_CERT_MANAGER_URL,
    HarnessConfig,
    get_config_path,
    load_config,
)
from scaffold_e2e.errors import SetupError


class TestHarnessConfig:
    """Tests for HarnessConfig defaults."""

    def test_default_values(self):
        """Test default configuration values."""
        config = HarnessConfig()
        assert config.kind_cluster == "kind"
        assert config.poll_interval == 1.0
        assert config.poll_timeout == 60.0
        assert config.cert_manager_url == DEFAULT_CERT_MANAGER_URL
        assert config.go_env == {"GO111MODULE": "on"}
        assert config.install_cert_manager is True

    def test_to_dict_hides_sources(self):
        """Test internal bookkeeping is not exported."""
        assert "_sources" not in HarnessConfig().to_dict()


class TestLoadConfig:
    """Tests for load_config precedence."""

    def test_defaults_without_file(self):
        """Test defaults apply when no file or env is present."""
        config = load_config()
        assert config.kubectl_bin == "kubectl"
        assert config.get_source("kubectl_bin") == "default"

    def test_default_file_location(self, isolated_env):
        """Test the default file lives under the home directory."""
        assert get_config_path() == isolated_env / ".scaffold-e2e" / "config.yaml"

    def test_file_values(self, tmp_path):
        """Test values are read from an explicit file."""
        path = tmp_path / "e2e.yaml"
        path.write_text(
            yaml.dump({"kind_cluster": "ci", "poll_timeout": 120, "keep_workspace": True})
        )

        config = load_config(path)

        assert config.kind_cluster == "ci"
        assert config.poll_timeout == 120.0
        assert config.keep_workspace is True
        assert config.get_source("kind_cluster") == "config file"

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        """Test environment variables win over the file."""
        path = tmp_path / "e2e.yaml"
        path.write_text(yaml.dump({"kind_cluster": "ci"}))
        monkeypatch.setenv("SCAFFOLD_E2E_KIND_CLUSTER", "local")
        monkeypatch.setenv("SCAFFOLD_E2E_INSTALL_CERT_MANAGER", "false")
        monkeypatch.setenv("SCAFFOLD_E2E_GO_ENV", "GO111MODULE=on,GOFLAGS=-mod=mod")

        config = load_config(path)

        assert config.kind_cluster == "local"
        assert config.get_source("kind_cluster") == "environment"
        assert config.install_cert_manager is False
        assert config.go_env == {"GO111MODULE": "on", "GOFLAGS": "-mod=mod"}

    def test_kind_cluster_alias(self, monkeypatch):
        """Test the conventional KIND_CLUSTER variable is honoured."""
        monkeypatch.setenv("KIND_CLUSTER", "e2e")
        assert load_config().kind_cluster == "e2e"

    def test_missing_explicit_file(self, tmp_path):
        """Test a missing explicit file is a setup error."""
        with pytest.raises(SetupError):
            load_config(tmp_path / "missing.yaml")

    def test_unknown_key(self, tmp_path):
        """Test typos in the file are reported."""
        path = tmp_path / "e2e.yaml"
        path.write_text(yaml.dump({"poll_timout": 5}))

        with pytest.raises(SetupError, match="poll_timout"):
            load_config(path)

    def test_invalid_value(self, monkeypatch):
        """Test a non-numeric timeout is a setup error."""
        monkeypatch.setenv("SCAFFOLD_E2E_POLL_TIMEOUT", "soon")
        with pytest.raises(SetupError):
            load_config()

    def test_non_positive_interval(self, monkeypatch):
        """Test a zero poll interval is rejected."""
        monkeypatch.setenv("SCAFFOLD_E2E_POLL_INTERVAL", "0")
        with pytest.raises(SetupError):
            load_config()

    def test_kubectl_timeout(self, monkeypatch):
        """Test the per-call kubectl limit is configurable and must be positive."""
        assert load_config().kubectl_timeout == 30.0

        monkeypatch.setenv("SCAFFOLD_E2E_KUBECTL_TIMEOUT", "12.5")
        assert load_config().kubectl_timeout == 12.5

        monkeypatch.setenv("SCAFFOLD_E2E_KUBECTL_TIMEOUT", "0")
        with pytest.raises(SetupError):
            load_config()
