"""Shared constants for the tests."""

from pathlib import Path

STEPS_DIR = Path(__file__).parent / "steps"

SOURCE_MODULE = "tests.steps.sources.record_source"
TRANSFORMER_MODULE = "tests.steps.transformers.record_transformer"
LOADER_MODULE = "tests.steps.loaders.record_loader"
ERROR_STEP_MODULE = "tests.steps.error_step"
INCREMENT_TRANSFORMER_MODULE = "tests.steps.transformers.increment_transformer"
INCREMENT_LOADER_MODULE = "tests.steps.loaders.increment_loader"
