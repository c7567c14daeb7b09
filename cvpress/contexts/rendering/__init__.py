"""
Rendering Context

Responsibilities:
- Loads and structurally validates per-language document descriptions
- Invokes the external renderer with auxiliary outputs suppressed
- Verifies the produced PDF and records build metadata next to it

Owns: Description validation, renderer invocation, render artifacts
Never: Edits CV content or typesets documents itself
"""

from cvpress.contexts.rendering.description import (
    DescriptionValidation,
    DocumentDescription,
    load_description,
    validate_description,
    validate_file,
)
from cvpress.contexts.rendering.metadata import (
    BuildMetadata,
    collect_build_metadata,
    read_metadata,
)
from cvpress.contexts.rendering.renderer import (
    RenderResult,
    build_render_command,
    render_all,
    render_description,
)

__all__ = [
    # Document descriptions
    "DocumentDescription",
    "DescriptionValidation",
    "load_description",
    "validate_description",
    "validate_file",
    # Build metadata
    "BuildMetadata",
    "collect_build_metadata",
    "read_metadata",
    # Rendering
    "RenderResult",
    "build_render_command",
    "render_description",
    "render_all",
]
