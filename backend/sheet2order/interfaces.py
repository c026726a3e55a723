"""
模块接口契约 - 定义各模块的抽象接口

设计原则：
1. 模块间通过接口通信，不直接依赖具体实现
2. 外部能力（栅格化/CAD渲染/生成模型）均以接口隔离，测试时可替换为fake
3. 匹配策略（前缀匹配）隔离在 IPartImageReconciler 之后，可替换为更严格的实现

使用方式：
    from sheet2order.interfaces import ICompletionClient

    class MyClient(ICompletionClient):
        def complete(self, prompt: str, image: PageImage | None = None) -> str:
            ...
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .models import (
        LayoutDocument,
        PageImage,
        ProcessingSession,
        QuotationDocument,
        RenderedImage,
    )


# ============================================================================
# 外部能力接口
# ============================================================================

class ICompletionClient(ABC):
    """生成模型接口 - 提示词(+可选图片) → 文本"""

    @abstractmethod
    def complete(self, prompt: str, image: PageImage | None = None) -> str:
        """
        调用生成模型并拼接完整的流式输出

        Args:
            prompt: 完整提示词
            image: 可选的内联图片（栅格化后的页面）

        Returns:
            拼接后的原始文本

        Raises:
            CompletionError: 网络/服务失败或空响应（不重试）
        """
        ...


class IRasterizer(ABC):
    """文档栅格化接口 - 文档 → 有序页面图片"""

    @abstractmethod
    def rasterize(self, document_path: Path, output_dir: Path) -> list[Path]:
        """
        将文档转换为按页排序的PNG图片

        Args:
            document_path: 输入文档路径（xlsx/pptx等）
            output_dir: 图片输出目录

        Returns:
            页面图片路径列表（按页码升序）

        Raises:
            RasterizeError: 转换失败（对本次请求致命）
        """
        ...


class ICADRenderer(ABC):
    """CAD预览渲染接口 - 模型文件 → 预览图"""

    @abstractmethod
    def render(self, model_bytes: bytes, filename: str) -> RenderedImage:
        """
        渲染单个CAD文件的预览图

        Args:
            model_bytes: 模型文件内容
            filename: 原始文件名

        Returns:
            预览图（取归档内第一张图片）

        Raises:
            RenderError: 渲染服务失败（调用方按单文件吞掉并记录）
        """
        ...


# ============================================================================
# 抽取与匹配接口
# ============================================================================

class IPartImageReconciler(ABC):
    """零件-图片匹配接口"""

    @abstractmethod
    def reconcile(
        self,
        filenames: list[str],
        layout: LayoutDocument,
        quotation: QuotationDocument,
    ) -> None:
        """
        将渲染图文件名回填到生产单数据行与报价单产品行（原地修改）

        Args:
            filenames: 渲染图文件名（小写，保持枚举顺序）
            layout: 生产单布局
            quotation: 报价单
        """
        ...


# ============================================================================
# 文档生成接口
# ============================================================================

class IProductionOrderEmitter(ABC):
    """生产单生成器接口"""

    @abstractmethod
    def render(self, layout: LayoutDocument, images: dict[str, RenderedImage]) -> bytes:
        """
        生成生产单

        Args:
            layout: 已匹配图片的生产单布局
            images: 文件名 → 渲染图

        Returns:
            xlsx 二进制内容
        """
        ...


class IQuotationEmitter(ABC):
    """报价单生成器接口"""

    @abstractmethod
    def render(self, quotation: QuotationDocument, images: dict[str, RenderedImage]) -> bytes:
        """
        生成报价单

        Args:
            quotation: 已匹配图片的报价单
            images: 文件名 → 渲染图

        Returns:
            xlsx 二进制内容
        """
        ...


# ============================================================================
# 会话管理接口
# ============================================================================

class ISessionManager(ABC):
    """会话管理器接口"""

    @abstractmethod
    def create_session(
        self,
        spreadsheet_name: str,
        spreadsheet_bytes: bytes,
        cad_files: list[tuple[str, bytes]] | None = None,
        **kwargs: Any,
    ) -> ProcessingSession:
        """创建会话并落盘上传文件"""
        ...

    @abstractmethod
    def schedule_cleanup(self, session: ProcessingSession) -> None:
        """到期后强制删除会话目录（无论成功与否）"""
        ...


# ============================================================================
# 异常定义
# ============================================================================

class Sheet2OrderError(Exception):
    """基础异常"""
    pass


class ConfigurationError(Sheet2OrderError):
    """配置缺失（启动前置校验失败）"""
    pass


class InputValidationError(Sheet2OrderError):
    """上传文件缺失或扩展名错误"""
    pass


class RasterizeError(Sheet2OrderError):
    """栅格化失败"""
    pass


class RenderError(Sheet2OrderError):
    """CAD预览渲染失败"""
    pass


class CompletionError(Sheet2OrderError):
    """生成模型调用失败"""
    pass


class ExtractionError(Sheet2OrderError):
    """结构抽取错误"""

    def __init__(self, message: str, structure: str | None = None):
        super().__init__(message)
        self.structure = structure


class StructureNotFoundError(ExtractionError):
    """模型输出中找不到指定结构"""
    pass


class StructureMalformedError(ExtractionError):
    """结构存在但无法解析或校验不通过"""
    pass


class GenerationError(Sheet2OrderError):
    """文档生成错误"""
    pass
