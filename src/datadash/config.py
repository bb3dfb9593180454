"""Configuration models and YAML loaders for DataDash."""
from pydantic import BaseModel, Field, ValidationError, model_validator
from typing import List, Dict, Any, Optional, Literal
import uuid
import yaml
from loguru import logger
import os


def _new_join_id() -> str:
    return str(uuid.uuid4())


class JoinConfig(BaseModel):
    """One join step: attach ``right_table_id`` to the accumulated dataset."""
    id: str = Field(default_factory=_new_join_id)
    right_table_id: str
    left_column: str    # Column from the accumulated dataset (or base table)
    right_column: str   # Column from the table being joined in
    join_type: Literal['LEFT', 'INNER'] = 'LEFT'


class DataModel(BaseModel):
    """Base table plus an ordered list of joins applied one after another."""
    base_table_id: str
    joins: List[JoinConfig] = Field(default_factory=list)


class ProfilerConfig(BaseModel):
    """Thresholds used by column type inference and sheet analysis."""

    # Majority-type decision, checked in this order: date, number, boolean
    date_threshold: float = Field(default=0.8, ge=0.0, le=1.0)
    number_threshold: float = Field(default=0.8, ge=0.0, le=1.0)
    boolean_threshold: float = Field(default=0.9, ge=0.0, le=1.0)

    # Strings of this length or shorter are never parsed as dates
    min_date_string_length: int = 5
    example_limit: int = 5

    # Dimension detection
    max_dimension_cardinality: int = 100
    dimension_row_ratio: float = 0.9

    outlier_iqr_multiplier: float = 1.5


class SuggesterConfig(BaseModel):
    """Heuristics for join suggestions."""
    key_uniqueness_threshold: float = Field(default=0.9, ge=0.0, le=1.0)
    default_join_type: Literal['LEFT', 'INNER'] = 'LEFT'
    # 'last' keeps the last qualifying name match, 'best' keeps the most unique one
    name_match_policy: Literal['last', 'best'] = 'last'


class AppConfig(BaseModel):
    profiler: ProfilerConfig = Field(default_factory=ProfilerConfig)
    suggester: SuggesterConfig = Field(default_factory=SuggesterConfig)
    model: Optional[DataModel] = None
    log_level: Literal['DEBUG', 'INFO', 'WARNING', 'ERROR'] = 'INFO'

    @model_validator(mode='after')
    def _validate_unique_join_ids(self):
        """Join ids must be unique within a model."""
        if self.model:
            ids = [j.id for j in self.model.joins]
            duplicates = {i for i in ids if ids.count(i) > 1}
            if duplicates:
                raise ValueError(f"Duplicate join ids in model: {sorted(duplicates)}")
        return self


def _read_yaml(path: str) -> Dict[str, Any]:
    if not os.path.exists(path):
        logger.error(f"Config file not found: {path}")
        raise FileNotFoundError(path)

    with open(path, 'r', encoding='utf-8') as f:
        raw = yaml.safe_load(f)

    return raw or {}


def load_config_from_file(path: str) -> AppConfig:
    """Load and validate an application configuration from a YAML file."""
    raw = _read_yaml(path)

    try:
        cfg = AppConfig.model_validate(raw)
    except ValidationError as e:
        logger.error("Configuration validation failed: {}".format(e))
        raise

    logger.info(f"Config parsed: {path}")
    logger.info(f"  Type thresholds: date={cfg.profiler.date_threshold}, "
                f"number={cfg.profiler.number_threshold}, boolean={cfg.profiler.boolean_threshold}")
    logger.info(f"  Suggestion policy: {cfg.suggester.name_match_policy}")
    if cfg.model:
        logger.info(f"  Model: base={cfg.model.base_table_id}, joins={len(cfg.model.joins)}")

    return cfg


def load_data_model(path: str) -> DataModel:
    """
    Load a DataModel from YAML.

    Accepts either a bare model document (``base_table_id`` + ``joins``) or a
    full application config carrying a ``model`` section.
    """
    raw = _read_yaml(path)

    try:
        if isinstance(raw, dict) and 'model' in raw:
            cfg = AppConfig.model_validate(raw)
            if cfg.model is None:
                raise ValueError(f"Config file has an empty 'model' section: {path}")
            model = cfg.model
        else:
            model = DataModel.model_validate(raw)
    except ValidationError as e:
        logger.error("Data model validation failed: {}".format(e))
        raise

    logger.info(f"Data model loaded: base={model.base_table_id}, joins={len(model.joins)}")
    return model


def save_data_model(model: DataModel, path: str) -> str:
    """Write a DataModel as a YAML document readable by ``load_data_model``."""
    parent = os.path.dirname(os.path.abspath(path))
    os.makedirs(parent, exist_ok=True)

    with open(path, 'w', encoding='utf-8') as f:
        yaml.safe_dump(model.model_dump(), f, sort_keys=False)

    logger.info(f"Data model saved to: {path}")
    return path
