"""
FastAPI 接口层
"""

from .app import build_response, create_app

__all__ = ["build_response", "create_app"]
