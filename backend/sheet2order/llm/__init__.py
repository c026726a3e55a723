"""
生成模型模块
"""

from .completion import GeminiCompletionClient

__all__ = ["GeminiCompletionClient"]
