"""Unit tests for configuration management."""

import shutil
from pathlib import Path

import pytest

from flightwatch.config.defaults import ProductParams, get_default_config
from flightwatch.config.loader import ConfigLoader
from flightwatch.config.validation import ConfigValidator

REPO_CONFIG_DIR = Path(__file__).parent.parent.parent / "config"


class TestDefaultConfig:
    """Test suite for default configuration."""

    def test_default_config_creation(self) -> None:
        """Test that default configuration can be created."""
        config = get_default_config()

        assert config.sync.max_concurrency == 8
        assert config.sync.lookup_timeout_seconds == 15.0
        assert config.entitlement.free_action_quota == 1
        assert config.entitlement.require_entitlement_to_track is True
        assert config.storage.watchlist_key == "saved_flights"
        assert config.storage.entitlement_key == "entitlement_state"

    def test_default_products(self) -> None:
        """Test the weekly trial and yearly plans are recognized by default."""
        products = {p.id: p for p in get_default_config().entitlement.products}

        assert products["subscription.flightwatch.weekly"].has_intro_trial is True
        assert products["subscription.flightwatch.weekly"].display_name == "3-Day Trial"
        assert products["subscription.flightwatch.yearly"].has_intro_trial is False

    def test_defaults_pass_validation(self) -> None:
        """Test the built-in defaults are valid."""
        loader = ConfigLoader.create(Path("/nonexistent"))

        assert ConfigValidator.validate_config(loader.merge_config()) == []


class TestConfigLoader:
    """Test suite for configuration loader."""

    def test_config_loader_creation(self) -> None:
        """Test that ConfigLoader points at the repository config directory."""
        loader = ConfigLoader.create()

        assert isinstance(loader.config_dir, Path)
        assert loader.config_dir.name == "config"

    def test_missing_settings_file(self, tmp_path) -> None:
        """Test a missing settings.yaml yields no overrides."""
        assert ConfigLoader.create(tmp_path).load_settings_file() == {}

    def test_settings_file_overrides_defaults(self, tmp_path) -> None:
        """Test values from settings.yaml replace defaults key by key."""
        (tmp_path / "settings.yaml").write_text(
            "sync:\n"
            "  max_concurrency: 4\n"
            "lookup:\n"
            "  base_url: https://flights.example.com\n"
        )

        config = ConfigLoader.create(tmp_path).build()

        assert config.sync.max_concurrency == 4
        assert config.sync.lookup_timeout_seconds == 15.0
        assert config.lookup.base_url == "https://flights.example.com"

    def test_explicit_overrides_win(self, tmp_path) -> None:
        """Test explicit overrides take precedence over the settings file."""
        (tmp_path / "settings.yaml").write_text("sync:\n  max_concurrency: 4\n")

        config = ConfigLoader.create(tmp_path).build({"sync": {"max_concurrency": 2}})

        assert config.sync.max_concurrency == 2

    def test_products_become_dataclasses(self, tmp_path) -> None:
        """Test product mappings are converted to ProductParams."""
        config = ConfigLoader.create(tmp_path).build({
            "entitlement": {
                "products": [{"id": "plan.monthly", "display_name": "Monthly"}],
                "preferred_product_id": "plan.monthly",
            }
        })

        assert config.entitlement.products == (ProductParams(id="plan.monthly", display_name="Monthly"),)
        assert config.entitlement.product_ids == ("plan.monthly",)

    def test_example_settings_file_is_valid(self, tmp_path) -> None:
        """Test the shipped example settings build cleanly."""
        shutil.copy(REPO_CONFIG_DIR / "settings.example.yaml", tmp_path / "settings.yaml")

        config = ConfigLoader.create(tmp_path).build()

        assert config == get_default_config()

    def test_non_mapping_file_rejected(self, tmp_path) -> None:
        """Test a settings file that is not a mapping is an error."""
        (tmp_path / "settings.yaml").write_text("- just\n- a list\n")

        with pytest.raises(ValueError):
            ConfigLoader.create(tmp_path).load_settings_file()

    def test_invalid_values_rejected(self, tmp_path) -> None:
        """Test build() refuses configurations that fail validation."""
        with pytest.raises(ValueError) as exc_info:
            ConfigLoader.create(tmp_path).build({"sync": {"max_concurrency": 0}})

        assert "sync.max_concurrency" in str(exc_info.value)


class TestConfigValidator:
    """Test suite for configuration validation."""

    @pytest.mark.parametrize("config, field", [
        ({"sync": {"max_concurrency": 65}}, "sync.max_concurrency"),
        ({"sync": {"max_concurrency": True}}, "sync.max_concurrency"),
        ({"sync": {"lookup_timeout_seconds": 0}}, "sync.lookup_timeout_seconds"),
        ({"lookup": {"base_url": "ftp://flights"}}, "lookup.base_url"),
        ({"lookup": {"timeout_seconds": "fast"}}, "lookup.timeout_seconds"),
        ({"entitlement": {"free_action_quota": -1}}, "entitlement.free_action_quota"),
        ({"entitlement": {"require_entitlement_to_track": "yes"}},
         "entitlement.require_entitlement_to_track"),
        ({"entitlement": {"listener_retry_seconds": -1}}, "entitlement.listener_retry_seconds"),
        ({"entitlement": {"products": []}}, "entitlement.products"),
        ({"entitlement": {"products": [{"id": "a"}]}}, "entitlement.products[0]"),
        ({"logging": {"level": "LOUD"}}, "logging.level"),
        ({"logging": {"format_json": "true"}}, "logging.format_json"),
        ({"sync": {"retries": 3}}, "sync.retries"),
        ({"metrics": {}}, "metrics"),
        ({"storage": "here"}, "storage"),
    ])
    def test_invalid_values(self, config, field) -> None:
        """Test each invalid value is reported against its field."""
        errors = ConfigValidator.validate_config(config)

        assert field in [error.field for error in errors]

    def test_duplicate_product_ids(self) -> None:
        """Test duplicate product ids are reported."""
        errors = ConfigValidator.validate_entitlement_params({
            "products": [
                {"id": "a", "display_name": "A"},
                {"id": "a", "display_name": "A again"},
            ]
        })

        assert [error.field for error in errors] == ["entitlement.products[1].id"]

    def test_valid_partial_config(self) -> None:
        """Test a partial but valid configuration has no errors."""
        errors = ConfigValidator.validate_config({
            "sync": {"max_concurrency": 64, "lookup_timeout_seconds": 2.5},
            "logging": {"level": "debug"},
        })

        assert errors == []
