"""
图片模型 - CAD渲染预览图与栅格化页面图
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field


class RenderedImage(BaseModel):
    """CAD预览图（内存字节，按源CAD文件名索引，会话结束即丢弃）"""
    source_name: str = Field(..., description="源CAD文件名（原始大小写）")
    data: bytes = Field(..., repr=False)
    extension: str = "png"

    @property
    def key(self) -> str:
        """匹配用键（小写文件名）"""
        return self.source_name.lower()


class PageImage(BaseModel):
    """栅格化页面图（作为模型的内联图片输入）"""
    data: bytes = Field(..., repr=False)
    mime_type: str = "image/png"
    path: Path | None = None

    @classmethod
    def from_path(cls, path: Path) -> PageImage:
        suffix = path.suffix.lower()
        mime = "image/jpeg" if suffix in (".jpg", ".jpeg") else "image/png"
        return cls(data=path.read_bytes(), mime_type=mime, path=path)
