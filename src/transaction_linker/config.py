"""Configuration loading and validation for the transaction linker."""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional

import yaml

from transaction_linker.utils.logging_config import get_logger

logger = get_logger(__name__)


class ConfigError(Exception):
    """Exception raised for configuration errors."""

    pass


# Default values for MerchantFilterConfig
DEFAULT_BRAND_TOKENS = ("amazon", "amzn")
DEFAULT_LINE_ITEM_MERCHANT = "amazon"
DEFAULT_DENYLIST = (
    "prime",            # Amazon Prime, Prime Video
    "grocery subscri",  # Amazon Grocery Subscription
    "music",
    "digital",          # Amazon Digital Services
    "aws",
    "web services",
)
DEFAULT_MARKETPLACE_PATTERNS = ("mktpl", "mktp", ".com")

# Default values for MatchingConfig
DEFAULT_MERCHANT_KEYWORDS = ("amazon", "amzn", "amazon.com", "amazon marketplace")


def _string_tuple(data: dict[str, object], key: str, default: tuple[str, ...]) -> tuple[str, ...]:
    """Read a list of strings from a config section."""
    value = data.get(key)
    if value is None:
        return default
    if not isinstance(value, (list, tuple)):
        raise ConfigError(f"'{key}' must be a list, got {type(value).__name__}")
    return tuple(str(item).lower() for item in value)


def _decimal(data: dict[str, object], key: str, default: Decimal) -> Decimal:
    """Read a Decimal from a config section."""
    if key not in data:
        return default
    try:
        return Decimal(str(data[key]))
    except InvalidOperation as e:
        raise ConfigError(f"'{key}' must be a number, got {data[key]!r}") from e


def _int(data: dict[str, object], key: str, default: int) -> int:
    """Read an int from a config section."""
    if key not in data:
        return default
    try:
        return int(data[key])  # type: ignore[arg-type]
    except (TypeError, ValueError) as e:
        raise ConfigError(f"'{key}' must be an integer, got {data[key]!r}") from e


@dataclass(frozen=True)
class MerchantFilterConfig:
    """Keyword lists deciding which merchant strings are linkable charges.

    Attributes:
        brand_tokens: Marketplace brand name and abbreviations.
        line_item_merchant: Bare marketplace name used for imported line items.
        denylist: Substrings marking subscriptions and platform services.
        marketplace_patterns: Substrings marking marketplace charges.
    """

    brand_tokens: tuple[str, ...] = DEFAULT_BRAND_TOKENS
    line_item_merchant: str = DEFAULT_LINE_ITEM_MERCHANT
    denylist: tuple[str, ...] = DEFAULT_DENYLIST
    marketplace_patterns: tuple[str, ...] = DEFAULT_MARKETPLACE_PATTERNS

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "MerchantFilterConfig":
        """Create from dictionary."""
        return cls(
            brand_tokens=_string_tuple(data, "brand_tokens", DEFAULT_BRAND_TOKENS),
            line_item_merchant=str(data.get("line_item_merchant", DEFAULT_LINE_ITEM_MERCHANT)).lower(),
            denylist=_string_tuple(data, "denylist", DEFAULT_DENYLIST),
            marketplace_patterns=_string_tuple(data, "marketplace_patterns", DEFAULT_MARKETPLACE_PATTERNS),
        )


@dataclass(frozen=True)
class MatchingConfig:
    """Tunable parameters of the matching engine.

    Attributes:
        date_window: Maximum day gap (±) between parent and children.
        amount_tolerance: Difference that still earns full amount points.
        amount_ceiling: Difference at which amount points reach zero.
        auto_link_threshold: Minimum total score to link without review.
        suggest_threshold: Minimum total score to suggest a link.
        enable_merchant_matching: Filter parents by merchant keywords.
        merchant_keywords: Keywords a parent merchant must contain.
    """

    date_window: int = 30
    amount_tolerance: Decimal = Decimal("3.00")
    amount_ceiling: Decimal = Decimal("10.00")
    auto_link_threshold: int = 80
    suggest_threshold: int = 70
    enable_merchant_matching: bool = True
    merchant_keywords: tuple[str, ...] = DEFAULT_MERCHANT_KEYWORDS

    def __post_init__(self) -> None:
        if self.date_window <= 0:
            raise ConfigError(f"date_window must be positive, got {self.date_window}")
        if self.amount_tolerance < 0:
            raise ConfigError(f"amount_tolerance must not be negative, got {self.amount_tolerance}")
        if self.amount_ceiling <= self.amount_tolerance:
            raise ConfigError(
                f"amount_ceiling ({self.amount_ceiling}) must exceed "
                f"amount_tolerance ({self.amount_tolerance})"
            )
        for name in ("auto_link_threshold", "suggest_threshold"):
            value = getattr(self, name)
            if not 0 <= value <= 100:
                raise ConfigError(f"{name} must be between 0 and 100, got {value}")

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "MatchingConfig":
        """Create from dictionary."""
        return cls(
            date_window=_int(data, "date_window", 30),
            amount_tolerance=_decimal(data, "amount_tolerance", Decimal("3.00")),
            amount_ceiling=_decimal(data, "amount_ceiling", Decimal("10.00")),
            auto_link_threshold=_int(data, "auto_link_threshold", 80),
            suggest_threshold=_int(data, "suggest_threshold", 70),
            enable_merchant_matching=bool(data.get("enable_merchant_matching", True)),
            merchant_keywords=_string_tuple(data, "merchant_keywords", DEFAULT_MERCHANT_KEYWORDS),
        )


@dataclass(frozen=True)
class LinkingConfig:
    """Configuration for link validation and candidate lookup.

    Attributes:
        amount_warning_ratio: Relative parent/children difference above which
            validation warns that the totals disagree.
        candidate_window_days: Window (±) used by find_candidate_transactions.
    """

    amount_warning_ratio: Decimal = Decimal("0.10")
    candidate_window_days: int = 7

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "LinkingConfig":
        """Create from dictionary."""
        return cls(
            amount_warning_ratio=_decimal(data, "amount_warning_ratio", Decimal("0.10")),
            candidate_window_days=_int(data, "candidate_window_days", 7),
        )


@dataclass
class LoggingConfig:
    """Configuration for logging.

    Attributes:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional path to a log file.
    """

    level: str = "INFO"
    file: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "LoggingConfig":
        """Create from dictionary."""
        file = data.get("file")
        return cls(
            level=str(data.get("level", "INFO")),
            file=str(file) if file else None,
        )


@dataclass
class Config:
    """Main configuration container."""

    matching: MatchingConfig = field(default_factory=MatchingConfig)
    merchant_filter: MerchantFilterConfig = field(default_factory=MerchantFilterConfig)
    linking: LinkingConfig = field(default_factory=LinkingConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_yaml_file(path: Path) -> dict[str, object]:
    """Load a YAML file.

    Args:
        path: Path to the YAML file.

    Returns:
        Parsed YAML content.

    Raises:
        FileNotFoundError: If file doesn't exist.
        ConfigError: If the file is not valid YAML or not a mapping.
    """
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, encoding="utf-8") as f:
        try:
            content = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if content is None:
        return {}
    if not isinstance(content, dict):
        raise ConfigError(f"{path} must contain a mapping, got {type(content).__name__}")
    return content


def _section(data: dict[str, object], name: str) -> dict[str, object]:
    """Return a named mapping section, or an empty dict when absent."""
    section = data.get(name)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigError(f"'{name}' must be a mapping, got {type(section).__name__}")
    return section


def config_from_dict(data: dict[str, object]) -> Config:
    """Build a Config from an already-parsed settings mapping.

    Args:
        data: Parsed settings content.

    Returns:
        Complete Config object.
    """
    return Config(
        matching=MatchingConfig.from_dict(_section(data, "matching")),
        merchant_filter=MerchantFilterConfig.from_dict(_section(data, "merchant_filter")),
        linking=LinkingConfig.from_dict(_section(data, "linking")),
        logging=LoggingConfig.from_dict(_section(data, "logging")),
    )


def load_config(settings_path: Optional[Path] = None) -> Config:
    """Load configuration from settings.yaml.

    Args:
        settings_path: Path to settings.yaml (default: ./config/settings.yaml).

    Returns:
        Complete Config object; defaults when the file is missing.
    """
    if settings_path is None:
        settings_path = Path("config") / "settings.yaml"

    if not settings_path.exists():
        logger.warning(f"Settings file not found: {settings_path}, using defaults")
        return Config()

    config = config_from_dict(load_yaml_file(settings_path))
    logger.info(f"Loaded settings from {settings_path}")
    return config
