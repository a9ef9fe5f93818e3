"""
Configuration management and loading.

Handles pricing, quota, history, transform and storage settings.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Set

import yaml

from creation_studio.core.pricing import CostModel
from creation_studio.storage.db import DEFAULT_DB_PATH
from creation_studio.storage.local_cache import DEFAULT_CACHE_LIMIT, DEFAULT_CACHE_PATH

DEFAULT_MODEL = "gpt-4o"


@dataclass(frozen=True)
class QuotaConfig:
    """Free generations granted to every owner."""
    free_generations: int = 1

    def __post_init__(self):
        """Validate quota values."""
        if self.free_generations < 0:
            raise ValueError("free_generations must be >= 0")


@dataclass(frozen=True)
class HistoryConfig:
    """Undo and history cache limits."""
    undo_capacity: int = 20
    local_cache_limit: int = DEFAULT_CACHE_LIMIT

    def __post_init__(self):
        """Validate history limits are positive."""
        if self.undo_capacity <= 0:
            raise ValueError("undo_capacity must be > 0")
        if self.local_cache_limit <= 0:
            raise ValueError("local_cache_limit must be > 0")


@dataclass(frozen=True)
class TransformConfig:
    """Settings for the transform service."""
    model: str = DEFAULT_MODEL
    temperature: float = 0.1
    min_refine_length: int = 100

    def __post_init__(self):
        """Validate transform settings."""
        if not self.model or not self.model.strip():
            raise ValueError("model is required and cannot be empty")
        if not 0 <= self.temperature <= 2:
            raise ValueError("temperature must be between 0 and 2")
        if self.min_refine_length < 0:
            raise ValueError("min_refine_length must be >= 0")


@dataclass(frozen=True)
class StorageConfig:
    """File locations for persistence."""
    db_path: str = DEFAULT_DB_PATH
    local_cache_path: str = DEFAULT_CACHE_PATH


@dataclass(frozen=True)
class StudioConfig:
    """Complete studio configuration."""
    pricing: CostModel = field(default_factory=CostModel)
    quota: QuotaConfig = field(default_factory=QuotaConfig)
    history: HistoryConfig = field(default_factory=HistoryConfig)
    transform: TransformConfig = field(default_factory=TransformConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)


_DECIMAL_PRICING_KEYS = {
    'input_rate', 'output_rate', 'volatility_buffer',
    'margin_multiplier', 'overhead', 'price_floor'
}
_INT_PRICING_KEYS = {'output_units', 'deep_threshold', 'elite_threshold'}


def default_studio_config() -> StudioConfig:
    """Return the configuration used when no file is given."""
    return StudioConfig()


def load_studio_config(path: str) -> StudioConfig:
    """Load and validate studio configuration from YAML file.

    Strict validation ensures no silent misconfigurations, since the
    pricing section directly determines what owners are charged.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated StudioConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Studio config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if not raw_config:
        raise ValueError("Configuration file is empty")
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration must be a dictionary")

    allowed_top_keys = {'pricing', 'quota', 'history', 'transform', 'storage'}
    unknown_keys = set(raw_config.keys()) - allowed_top_keys
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    return StudioConfig(
        pricing=_parse_pricing(_section(raw_config, 'pricing')),
        quota=_parse_quota(_section(raw_config, 'quota')),
        history=_parse_history(_section(raw_config, 'history')),
        transform=_parse_transform(_section(raw_config, 'transform')),
        storage=_parse_storage(_section(raw_config, 'storage'))
    )


def _section(raw_config: Dict, name: str) -> Dict:
    """Return a config section, defaulting to empty."""
    data = raw_config.get(name)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"'{name}' must be a dictionary")
    return data


def _check_keys(data: Dict, allowed: Set[str], path: str) -> None:
    unknown_keys = set(data.keys()) - allowed
    if unknown_keys:
        raise ValueError(f"Unknown keys in {path}: {unknown_keys}")


def _number(value: Any, key: str, path: str) -> Any:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"'{key}' in {path} must be a number")
    return value


def _integer(value: Any, key: str, path: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"'{key}' in {path} must be an integer")
    return value


def _parse_pricing(data: Dict) -> CostModel:
    """Parse the pricing section into a CostModel.

    Numbers are converted through str() so that 1.25 in YAML becomes
    Decimal("1.25") rather than its binary float expansion.
    """
    _check_keys(data, _DECIMAL_PRICING_KEYS | _INT_PRICING_KEYS, "pricing")

    kwargs = {}
    for key, value in data.items():
        if key in _DECIMAL_PRICING_KEYS:
            kwargs[key] = Decimal(str(_number(value, key, "pricing")))
        else:
            kwargs[key] = _integer(value, key, "pricing")

    return CostModel(**kwargs)


def _parse_quota(data: Dict) -> QuotaConfig:
    _check_keys(data, {'free_generations'}, "quota")
    if 'free_generations' in data:
        return QuotaConfig(free_generations=_integer(data['free_generations'], 'free_generations', "quota"))
    return QuotaConfig()


def _parse_history(data: Dict) -> HistoryConfig:
    _check_keys(data, {'undo_capacity', 'local_cache_limit'}, "history")
    kwargs = {key: _integer(value, key, "history") for key, value in data.items()}
    return HistoryConfig(**kwargs)


def _parse_transform(data: Dict) -> TransformConfig:
    _check_keys(data, {'model', 'temperature', 'min_refine_length'}, "transform")

    kwargs: Dict[str, Any] = {}
    if 'model' in data:
        if not isinstance(data['model'], str):
            raise ValueError("'model' in transform must be a string")
        kwargs['model'] = data['model']
    if 'temperature' in data:
        kwargs['temperature'] = float(_number(data['temperature'], 'temperature', "transform"))
    if 'min_refine_length' in data:
        kwargs['min_refine_length'] = _integer(data['min_refine_length'], 'min_refine_length', "transform")

    return TransformConfig(**kwargs)


def _parse_storage(data: Dict) -> StorageConfig:
    _check_keys(data, {'db_path', 'local_cache_path'}, "storage")
    for key, value in data.items():
        if not isinstance(value, str) or not value.strip():
            raise ValueError(f"'{key}' in storage must be a non-empty string")
    return StorageConfig(**data)
