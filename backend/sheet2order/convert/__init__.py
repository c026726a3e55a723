"""
外部能力适配 - 文档栅格化、CAD预览渲染
"""

from .cad_renderer import HttpCADRenderer, first_image_member, render_all
from .rasterizer import LibreOfficeRasterizer, page_number

__all__ = [
    "HttpCADRenderer",
    "LibreOfficeRasterizer",
    "first_image_member",
    "page_number",
    "render_all",
]
