"""Tests for configuration loading."""

from decimal import Decimal
from pathlib import Path

import pytest

from transaction_linker.config import (
    Config,
    ConfigError,
    LinkingConfig,
    MatchingConfig,
    load_config,
    load_yaml_file,
)


class TestLoadConfig:
    """Tests for load_config."""

    def test_missing_file_uses_defaults(self, tmp_path: Path) -> None:
        """Test that a missing settings file is not an error."""
        config = load_config(tmp_path / "settings.yaml")
        assert config == Config()
        assert config.matching.date_window == 30
        assert config.linking.candidate_window_days == 7

    def test_sections_are_read(self, tmp_path: Path) -> None:
        """Test that every section overrides its defaults."""
        path = tmp_path / "settings.yaml"
        path.write_text(
            "matching:\n"
            "  date_window: 14\n"
            "  amount_tolerance: '1.50'\n"
            "  auto_link_threshold: 90\n"
            "  merchant_keywords: [Amazon, AMZN]\n"
            "merchant_filter:\n"
            "  denylist: [prime]\n"
            "linking:\n"
            "  amount_warning_ratio: 0.05\n"
            "logging:\n"
            "  level: DEBUG\n"
            "  file: logs/linker.log\n",
            encoding="utf-8",
        )
        config = load_config(path)

        assert config.matching.date_window == 14
        assert config.matching.amount_tolerance == Decimal("1.50")
        assert config.matching.amount_ceiling == Decimal("10.00")
        assert config.matching.auto_link_threshold == 90
        assert config.matching.merchant_keywords == ("amazon", "amzn")
        assert config.merchant_filter.denylist == ("prime",)
        assert config.merchant_filter.brand_tokens == ("amazon", "amzn")
        assert config.linking == LinkingConfig(amount_warning_ratio=Decimal("0.05"))
        assert config.logging.level == "DEBUG"
        assert config.logging.file == "logs/linker.log"

    def test_empty_file_uses_defaults(self, tmp_path: Path) -> None:
        """Test that an empty YAML document gives defaults."""
        path = tmp_path / "settings.yaml"
        path.write_text("", encoding="utf-8")
        assert load_config(path) == Config()

    @pytest.mark.parametrize(
        "content, message",
        [
            ("matching: 5\n", "'matching' must be a mapping"),
            ("matching:\n  merchant_keywords: amazon\n", "'merchant_keywords' must be a list"),
            ("matching:\n  amount_tolerance: lots\n", "'amount_tolerance' must be a number"),
            ("matching:\n  date_window: soon\n", "'date_window' must be an integer"),
            ("matching:\n  suggest_threshold: 120\n", "suggest_threshold must be between"),
            ("- just\n- a list\n", "must contain a mapping"),
            ("matching: [unclosed\n", "Invalid YAML"),
        ],
    )
    def test_invalid_settings(self, tmp_path: Path, content: str, message: str) -> None:
        """Test that invalid settings raise ConfigError."""
        path = tmp_path / "settings.yaml"
        path.write_text(content, encoding="utf-8")
        with pytest.raises(ConfigError, match=message):
            load_config(path)

    def test_load_yaml_file_missing(self, tmp_path: Path) -> None:
        """Test that load_yaml_file requires the file."""
        with pytest.raises(FileNotFoundError):
            load_yaml_file(tmp_path / "nope.yaml")


class TestMatchingConfig:
    """Tests for MatchingConfig validation."""

    def test_defaults(self) -> None:
        """Test the default scoring parameters."""
        config = MatchingConfig()
        assert config.amount_tolerance == Decimal("3.00")
        assert config.amount_ceiling == Decimal("10.00")
        assert config.auto_link_threshold == 80
        assert config.suggest_threshold == 70

    def test_non_positive_window(self) -> None:
        """Test that the date window must be positive."""
        with pytest.raises(ConfigError, match="date_window must be positive"):
            MatchingConfig(date_window=0)
