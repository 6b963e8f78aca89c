"""Processing options: typed representation of processing_options.yaml.

Holds the knobs a user sets before submitting a job together with the
schema levels (0-3 sliders) the request builder turns into heuristics.
Every field has a default so the options are usable when the file is
absent or partially specified.
"""
import logging
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

MAX_PASSES = 10


class SchemaLevels(BaseModel):
    microstructure_control: int = Field(default=2, ge=0, le=3)
    macrostructure_analysis: int = Field(default=1, ge=0, le=3)
    anti_scanner_techniques: int = Field(default=3, ge=0, le=3)
    entropy_management: int = Field(default=2, ge=0, le=3)
    semantic_tone_tuning: int = Field(default=1, ge=0, le=3)
    formatting_safeguards: int = Field(default=3, ge=0, le=3)
    refiner_control: int = Field(default=2, ge=0, le=3)
    history_analysis: int = Field(default=1, ge=0, le=3)
    annotation_mode: int = Field(default=0, ge=0, le=3)
    humanize_academic: int = Field(default=2, ge=0, le=3)


class ProcessingOptions(BaseModel):
    passes: int = Field(default=3, ge=1, le=MAX_PASSES)
    aggressiveness: str = "auto"
    scanner_risk: int = Field(default=15, ge=0, le=100)
    keywords: str = ""  # comma-separated
    early_stop: bool = True
    strategy_mode: Literal["model", "rules"] = "model"
    dry_run: bool = False
    schema_levels: SchemaLevels = Field(default_factory=SchemaLevels)

    def keyword_list(self) -> list[str]:
        return [k.strip() for k in self.keywords.split(",") if k.strip()]

    @classmethod
    def load(cls, path: Path) -> "ProcessingOptions":
        """Load from a YAML file. Missing fields use defaults.

        Raises FileNotFoundError if path does not exist and ValidationError
        for out-of-range values.
        """
        import yaml  # only load and save need it
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        return cls.model_validate(data)

    @classmethod
    def load_or_default(cls, path: Path) -> "ProcessingOptions":
        """Load from path if it exists and is valid, otherwise return defaults."""
        import yaml
        if not path.exists():
            return cls()
        try:
            return cls.load(path)
        except (ValidationError, yaml.YAMLError) as exc:
            logger.warning("Invalid processing options in %s, using defaults: %s", path, exc)
            return cls()

    def save(self, path: Path) -> None:
        import yaml
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(yaml.safe_dump(self.model_dump(), sort_keys=False), encoding="utf-8")
