"""
Reader Annotations

Text annotation and anchoring engine: turns reader selections into durable
underlines, threads ideas against them and recomputes highlight geometry for
fixed-layout pages, reflowed paragraphs and reflowable renderers.
"""

__version__ = "1.0.0"
