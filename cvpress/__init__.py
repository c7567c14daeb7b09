"""
CVPRESS - CV rendering, publishing and release automation

Turns per-language CV document descriptions into PDFs with an external
renderer, publishes them as a small static site and attaches them to
versioned releases.

Architecture:
- Rendering Context: Description validation and PDF rendering
- Publishing Context: Landing page generation and static deployment
- Releasing Context: Release records, notes and asset upload
- Orchestration Context: Trigger classification and stage sequencing
"""

__version__ = "0.1.0"
