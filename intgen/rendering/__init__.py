"""Template content rendering."""

from .renderer import ContentRenderer, JinjaRenderer, RenderContext, conditions_met

__all__ = ["ContentRenderer", "JinjaRenderer", "RenderContext", "conditions_met"]
