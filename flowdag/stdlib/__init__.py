"""Ready-made pipelines built from the kernel primitives."""

from flowdag.stdlib.factories import (
    PIPELINE_TEMPLATES,
    ModelType,
    ReviewDepth,
    create_code_review_pipeline,
    create_custom_pipeline,
    create_full_stack_pipeline,
    create_ml_pipeline,
)

__all__ = [
    "PIPELINE_TEMPLATES",
    "ModelType",
    "ReviewDepth",
    "create_code_review_pipeline",
    "create_custom_pipeline",
    "create_full_stack_pipeline",
    "create_ml_pipeline",
]
