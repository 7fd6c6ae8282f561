"""Tests for settings and connection configuration."""
import json

import pytest
from pydantic import ValidationError

from devops_core.config import (
    AzureDevOpsConfig,
    Settings,
    find_local_config,
    load_config,
    load_config_from_path,
    validate_organization_url,
)


def write_config(directory, **overrides) -> None:
    data = {
        "organizationUrl": "https://dev.azure.com/contoso",
        "project": "Fabrikam",
        "pat": "supersecretpat123",
    }
    data.update(overrides)
    (directory / ".azure-devops.json").write_text(json.dumps(data), encoding="utf-8")


class TestOrganizationUrlValidation:
    """Test that a PAT is only ever sent to an Azure DevOps HTTPS host."""

    @pytest.mark.parametrize("url", [
        "https://dev.azure.com/contoso",
        "https://contoso.visualstudio.com",
        "https://contoso.dev.azure.com",
    ])
    def test_azure_devops_hosts_accepted(self, url):
        """Test the recognized Azure DevOps domains."""
        assert validate_organization_url(url) == url

    def test_trailing_slash_removed(self):
        """Test that a trailing slash is stripped."""
        assert validate_organization_url("https://dev.azure.com/contoso/") == "https://dev.azure.com/contoso"

    def test_http_rejected(self):
        """Test that plain HTTP is refused."""
        with pytest.raises(ValueError, match="HTTPS"):
            validate_organization_url("http://dev.azure.com/contoso")

    def test_foreign_host_rejected(self):
        """Test that lookalike hosts are refused."""
        with pytest.raises(ValueError, match="not a recognized"):
            validate_organization_url("https://dev.azure.com.attacker.example/contoso")

    def test_malformed_url_rejected(self):
        """Test that a value without scheme and host is refused."""
        with pytest.raises(ValueError, match="Invalid organization URL"):
            validate_organization_url("dev.azure.com/contoso")


class TestAzureDevOpsConfig:
    """Test the connection config model."""

    def test_parses_camel_case_file_keys(self):
        """Test loading the JSON file layout."""
        config = AzureDevOpsConfig.model_validate({
            "organizationUrl": "https://dev.azure.com/contoso/",
            "project": "Fabrikam",
            "pat": "supersecretpat123",
        })

        assert config.organization_url == "https://dev.azure.com/contoso"
        assert config.pat.get_secret_value() == "supersecretpat123"

    def test_pat_hidden_in_repr(self):
        """Test that the PAT does not leak through repr or str."""
        config = AzureDevOpsConfig.model_validate({
            "organizationUrl": "https://dev.azure.com/contoso",
            "project": "Fabrikam",
            "pat": "supersecretpat123",
        })

        assert "supersecretpat123" not in repr(config)
        assert "supersecretpat123" not in str(config)

    def test_empty_pat_rejected(self):
        """Test that an empty PAT is a validation error."""
        with pytest.raises(ValidationError):
            AzureDevOpsConfig.model_validate({
                "organizationUrl": "https://dev.azure.com/contoso",
                "project": "Fabrikam",
                "pat": "",
            })

    def test_insecure_url_rejected(self):
        """Test that an HTTP organization URL fails validation."""
        with pytest.raises(ValidationError):
            AzureDevOpsConfig.model_validate({
                "organizationUrl": "http://dev.azure.com/contoso",
                "project": "Fabrikam",
                "pat": "supersecretpat123",
            })


class TestConfigDiscovery:
    """Test finding .azure-devops.json files."""

    def test_found_in_start_directory(self, tmp_path):
        """Test discovery in the directory itself."""
        write_config(tmp_path)
        config = find_local_config(tmp_path)

        assert config is not None
        assert config.project == "Fabrikam"

    def test_found_in_parent_directory(self, tmp_path):
        """Test discovery walking up from a nested directory."""
        write_config(tmp_path, project="Parent Project")
        nested = tmp_path / "src" / "module"
        nested.mkdir(parents=True)

        config = find_local_config(nested)

        assert config.project == "Parent Project"

    def test_nearest_file_wins(self, tmp_path):
        """Test that a file closer to the start directory takes precedence."""
        write_config(tmp_path, project="Outer")
        inner = tmp_path / "inner"
        inner.mkdir()
        write_config(inner, project="Inner")

        assert find_local_config(inner).project == "Inner"

    def test_invalid_file_returns_none(self, tmp_path):
        """Test that an invalid file is reported as missing, not raised."""
        (tmp_path / "broken.json").write_text("{not json", encoding="utf-8")
        assert load_config_from_path(tmp_path / "broken.json") is None

        write_config(tmp_path, organizationUrl="http://dev.azure.com/contoso")
        assert load_config_from_path(tmp_path / ".azure-devops.json") is None

    def test_missing_file_returns_none(self, tmp_path):
        """Test loading a path that does not exist."""
        assert load_config_from_path(tmp_path / "absent.json") is None

    def test_explicit_path_takes_precedence(self, tmp_path):
        """Test that the configured path beats discovery."""
        write_config(tmp_path, project="Discovered")
        explicit_dir = tmp_path / "explicit"
        explicit_dir.mkdir()
        write_config(explicit_dir, project="Explicit")

        settings = Settings(_env_file=None, config_path=str(explicit_dir / ".azure-devops.json"))

        assert load_config(settings, tmp_path).project == "Explicit"

    def test_bad_explicit_path_falls_back_to_discovery(self, tmp_path):
        """Test discovery when the configured path cannot be loaded."""
        write_config(tmp_path, project="Discovered")
        settings = Settings(_env_file=None, config_path=str(tmp_path / "absent.json"))

        assert load_config(settings, tmp_path).project == "Discovered"


class TestSettings:
    """Test server settings."""

    def test_defaults(self, settings):
        """Test the default thresholds and limits."""
        assert settings.token_limit_bytes == 200_000
        assert settings.size_warning_bytes == 150_000
        assert settings.summary_threshold_items == 20
        assert settings.fetch_batch_size == 200
        assert settings.default_wiql_top == 200
        assert settings.default_page_size == 50

    def test_environment_override(self, monkeypatch):
        """Test that DEVOPS_MCP_* variables override defaults."""
        monkeypatch.setenv("DEVOPS_MCP_TOKEN_LIMIT_BYTES", "1000")
        monkeypatch.setenv("DEVOPS_MCP_API_VERSION", "7.0")

        settings = Settings(_env_file=None)

        assert settings.token_limit_bytes == 1000
        assert settings.api_version == "7.0"
