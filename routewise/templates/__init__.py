"""
Routewise Templates - Jinja2 rendering collaborator for view files.
"""

from .engine import TemplateRenderer

__all__ = ["TemplateRenderer"]
