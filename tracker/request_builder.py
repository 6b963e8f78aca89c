"""Build the refinement request from processing options and schema levels.

Schema levels are 0-3 sliders. Each maps to backend heuristics:
  - flags:   a level above 0 enables the feature
  - modes:   formatting safeguards are "strict" from level 3, annotation and
             humanizer levels 1/2/3 select increasingly heavy variants
  - weights: strategy weights and entropy knobs grow linearly with the
             level and are capped at 1.0
"""
import logging

from models.job_request import (
    AnnotationMode,
    FileDescriptor,
    FormattingSafeguards,
    OutputTarget,
    RefinementRequest,
)
from models.options import ProcessingOptions, SchemaLevels

logger = logging.getLogger(__name__)

_HUMANIZER_INTENSITY = {1: "light", 2: "medium"}
_ANNOTATION_VERBOSITY = {1: "low", 2: "medium"}


def build_request(
    options: ProcessingOptions,
    files: list[FileDescriptor],
) -> RefinementRequest:
    """Return the request for a job over ``files``.

    Raises ValueError when no file has been uploaded.
    """
    if not files:
        raise ValueError("Please upload a file first.")

    levels = options.schema_levels
    keywords = options.keyword_list()
    formatting = _formatting_safeguards(levels)

    request = RefinementRequest(
        files=[f.to_wire() for f in files],
        output=OutputTarget(),
        passes=options.passes,
        early_stop=options.early_stop,
        aggressiveness=options.aggressiveness,
        scanner_risk=options.scanner_risk,
        keywords=keywords,
        strategy_mode=options.strategy_mode,
        formatting_safeguards=formatting,
        history_analysis={"enabled": levels.history_analysis > 0},
        refiner_dry_run=options.dry_run,
        annotation_mode=_annotation_mode(levels),
        heuristics=_heuristics(levels, keywords, formatting),
        schema_levels=levels.model_dump(),
    )
    logger.debug("Built request: %d file(s), %d pass(es)", len(files), options.passes)
    return request


# ---------------------------------------------------------------------------
# Level mappings
# ---------------------------------------------------------------------------

def _formatting_safeguards(levels: SchemaLevels) -> FormattingSafeguards:
    return FormattingSafeguards(
        enabled=levels.formatting_safeguards > 0,
        mode="strict" if levels.formatting_safeguards >= 3 else "smart",
    )


def _annotation_mode(levels: SchemaLevels) -> AnnotationMode:
    level = levels.annotation_mode
    return AnnotationMode(
        enabled=level > 0,
        mode="inline" if level == 1 else "sidecar",
        verbosity=_ANNOTATION_VERBOSITY.get(level, "high"),
    )


def _capped(value: float) -> float:
    return round(min(1.0, value), 4)


def _heuristics(
    levels: SchemaLevels,
    keywords: list[str],
    formatting: FormattingSafeguards,
) -> dict:
    return {
        "microstructure_control": levels.microstructure_control > 0,
        "macrostructure_analysis": levels.macrostructure_analysis > 0,
        "anti_scanner_techniques": levels.anti_scanner_techniques > 0,
        "refiner_control": levels.refiner_control,
        "entropy_management": levels.entropy_management,
        "semantic_tone_tuning": levels.semantic_tone_tuning,
        "history_analysis": levels.history_analysis > 0,
        "annotation_mode": levels.annotation_mode > 0,
        "humanize_academic": {
            "enabled": levels.humanize_academic > 0,
            "intensity": _HUMANIZER_INTENSITY.get(levels.humanize_academic, "strong"),
        },
        "formatting_safeguards": formatting.model_dump(),
        "keywords": list(keywords),
        "strategy_weights": {
            "clarity": _capped(0.3 + levels.semantic_tone_tuning * 0.2),
            "persuasion": _capped(0.2 + levels.anti_scanner_techniques * 0.15),
            "brevity": _capped(0.2 + levels.microstructure_control * 0.1),
            "formality": _capped(0.4 + levels.humanize_academic * 0.1),
        },
        "entropy": {
            "risk_preference": _capped(0.3 + levels.entropy_management * 0.2),
            "repeat_penalty": _capped(levels.anti_scanner_techniques * 0.3),
            "phrase_penalty": _capped(levels.anti_scanner_techniques * 0.2),
        },
    }
