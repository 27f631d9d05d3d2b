"""
Prompt templates for the fixed processing modes.
"""

from .prompt_loader import PromptLoader

__all__ = ["PromptLoader"]
