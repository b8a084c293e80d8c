"""
Dispute template synthesis
==========================

Renders the Kleros dispute template of a foreign proxy and the data mapping
that populates it at dispute time.
"""

from .dispute import (
    ANSWERED_TOO_SOON,
    Answer,
    DisputeTemplate,
    DisputeTemplateMapping,
    MappingEntry,
    render_mapping,
    render_template,
)
from .renderer import placeholders, render

__all__ = [
    "ANSWERED_TOO_SOON",
    "Answer",
    "DisputeTemplate",
    "DisputeTemplateMapping",
    "MappingEntry",
    "placeholders",
    "render",
    "render_mapping",
    "render_template",
]
