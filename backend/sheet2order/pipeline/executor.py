"""
流水线执行器 - 编排各阶段执行

职责：
1. 按顺序执行适用于当前输入形式的阶段
2. 更新会话进度与状态
3. 单个CAD文件渲染失败只记标记，其余失败均终止本次处理
4. 汇总两份工作簿与诊断信息（归一化文本/模型原始输出/页面预览图）

外部能力在构造时注入，便于测试替换为fake；未注入时按配置创建默认实现。

测试要点：
- test_execute_text_mode: 文本模式端到端
- test_execute_image_mode: 图片模式走栅格化
- test_render_failure_is_flagged: 渲染失败不中断
- test_extraction_failure_marks_session: 抽取失败会话标记失败
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from ..config import InputMode, RuntimeConfig, get_config
from ..convert import HttpCADRenderer, LibreOfficeRasterizer, render_all
from ..doc_gen import ProductionOrderEmitter, QuotationEmitter
from ..extract import PrefixReconciler, PromptBuilder, TabularNormalizer, extract_structures
from ..interfaces import (
    GenerationError,
    ICADRenderer,
    ICompletionClient,
    IPartImageReconciler,
    IProductionOrderEmitter,
    IQuotationEmitter,
    IRasterizer,
    RasterizeError,
    Sheet2OrderError,
)
from ..llm import GeminiCompletionClient
from ..models import (
    LayoutDocument,
    PageImage,
    ProcessingSession,
    QuotationDocument,
    RenderedImage,
)
from .stages import PipelineStage, StageEnum, stages_for

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """一次处理的产物"""
    production_order: bytes
    quotation: bytes
    raw_output: str
    layout: LayoutDocument
    quotation_data: QuotationDocument
    transcript: str | None = None
    preview_image: bytes | None = None
    images: dict[str, RenderedImage] = field(default_factory=dict)
    flags: list[str] = field(default_factory=list)


class PipelineExecutor:
    """流水线执行器"""

    def __init__(
        self,
        config: RuntimeConfig | None = None,
        *,
        completion_client: ICompletionClient | None = None,
        rasterizer: IRasterizer | None = None,
        cad_renderer: ICADRenderer | None = None,
        reconciler: IPartImageReconciler | None = None,
        production_emitter: IProductionOrderEmitter | None = None,
        quotation_emitter: IQuotationEmitter | None = None,
        normalizer: TabularNormalizer | None = None,
        prompt_builder: PromptBuilder | None = None,
    ):
        self.config = config or get_config()
        self.mode = self.config.llm.input_mode

        self.completion_client = completion_client or GeminiCompletionClient(self.config.llm)

        self.rasterizer = rasterizer or LibreOfficeRasterizer(self.config.rasterizer)
        # 未配置渲染服务时不出图
        if cad_renderer is None and self.config.renderer.url:
            cad_renderer = HttpCADRenderer(self.config.renderer)
        self.cad_renderer = cad_renderer

        self.reconciler = reconciler or PrefixReconciler()
        self.production_emitter = production_emitter or ProductionOrderEmitter()
        self.quotation_emitter = quotation_emitter or QuotationEmitter(self.config.boilerplate)
        self.normalizer = normalizer or TabularNormalizer(
            max_rows=self.config.normalizer.max_rows,
            max_cols=self.config.normalizer.max_cols,
            empty_row_stop=self.config.normalizer.empty_row_stop,
        )
        self.prompt_builder = prompt_builder or PromptBuilder(self.config.boilerplate)

        self._handlers = {
            StageEnum.INGEST.value: self._stage_ingest,
            StageEnum.NORMALIZE.value: self._stage_normalize,
            StageEnum.RASTERIZE.value: self._stage_rasterize,
            StageEnum.BUILD_PROMPT.value: self._stage_build_prompt,
            StageEnum.COMPLETE.value: self._stage_complete,
            StageEnum.EXTRACT.value: self._stage_extract,
            StageEnum.RENDER_CAD.value: self._stage_render_cad,
            StageEnum.RECONCILE.value: self._stage_reconcile,
            StageEnum.EMIT.value: self._stage_emit,
        }

    def execute(self, session: ProcessingSession) -> PipelineResult:
        """执行流水线"""
        session.mark_running()
        logger.info(
            f"[{session.session_id}] 开始处理: {session.spreadsheet_path.name} ({self.mode.value})"
        )

        context: dict[str, Any] = {
            "cad_files": [],
            "transcript": None,
            "page_image": None,
            "images": {},
        }

        try:
            for stage in stages_for(self.mode):
                self._execute_stage(session, stage, context)

            session.mark_succeeded()

        except Exception as e:
            logger.error(f"[{session.session_id}] 流水线执行失败: {e}")
            session.mark_failed(str(e))
            raise

        page_image: PageImage | None = context["page_image"]
        return PipelineResult(
            production_order=context["production_order"],
            quotation=context["quotation"],
            raw_output=context["raw_output"],
            layout=context["layout"],
            quotation_data=context["quotation_data"],
            transcript=context["transcript"],
            preview_image=page_image.data if page_image is not None else None,
            images=context["images"],
            flags=list(session.flags),
        )

    def _execute_stage(self, session: ProcessingSession, stage: PipelineStage, context: dict) -> None:
        """执行单个阶段"""
        session.progress.stage = stage.name
        session.progress.percent = stage.progress_start
        session.progress.message = f"开始阶段: {stage.name}"
        logger.info(f"[{session.session_id}] 开始阶段: {stage.name}")

        try:
            self._handlers[stage.name](session, context)
        except Exception as e:
            logger.error(f"[{session.session_id}] 阶段失败 {stage.name}: {e}")
            session.add_flag(f"阶段失败:{stage.name}")
            raise

        session.progress.percent = stage.progress_end
        session.progress.message = f"完成阶段: {stage.name}"

    # ========================================================================
    # 各阶段
    # ========================================================================

    def _stage_ingest(self, session: ProcessingSession, context: dict) -> None:
        """读取上传文件"""
        if not session.spreadsheet_path.exists():
            raise FileNotFoundError(f"表格文件不存在: {session.spreadsheet_path}")

        for path in session.cad_paths:
            context["cad_files"].append((path.name, path.read_bytes()))
        logger.info(
            f"[{session.session_id}] 输入: {session.spreadsheet_path.name}, "
            f"CAD文件 {len(context['cad_files'])} 个"
        )

    def _stage_normalize(self, session: ProcessingSession, context: dict) -> None:
        """表格 → 文本"""
        transcript = self.normalizer.normalize(session.spreadsheet_path)
        context["transcript"] = transcript
        logger.debug(f"[{session.session_id}] 归一化文本:\n{transcript}")

    def _stage_rasterize(self, session: ProcessingSession, context: dict) -> None:
        """表格 → 首页图片"""
        pages = self.rasterizer.rasterize(session.spreadsheet_path, session.work_dir / "pages")
        if not pages:
            raise RasterizeError(f"栅格化未生成页面: {session.spreadsheet_path.name}")
        context["page_image"] = PageImage.from_path(pages[0])
        logger.info(f"[{session.session_id}] 栅格化 {len(pages)} 页，使用第1页")

    def _stage_build_prompt(self, session: ProcessingSession, context: dict) -> None:
        context["prompt"] = self.prompt_builder.build(self.mode, context["transcript"])

    def _stage_complete(self, session: ProcessingSession, context: dict) -> None:
        """调用生成模型"""
        image = context["page_image"] if self.mode != InputMode.TEXT else None
        raw_output = self.completion_client.complete(context["prompt"], image)
        context["raw_output"] = raw_output
        logger.debug(f"[{session.session_id}] 模型原始输出:\n{raw_output}")

    def _stage_extract(self, session: ProcessingSession, context: dict) -> None:
        """模型输出 → 两份结构化文档"""
        documents = extract_structures(context["raw_output"])
        context["layout"] = documents.layout
        context["quotation_data"] = documents.quotation
        logger.info(
            f"[{session.session_id}] 抽取完成: 布局 {len(documents.layout)} 行, "
            f"产品 {len(documents.quotation.products)} 个"
        )

    def _stage_render_cad(self, session: ProcessingSession, context: dict) -> None:
        """CAD文件 → 预览图（单文件失败只记标记）"""
        cad_files = context["cad_files"]
        if not cad_files:
            return
        if self.cad_renderer is None:
            logger.warning(f"[{session.session_id}] 未配置渲染服务，{len(cad_files)} 个CAD文件不出图")
            session.add_flag("CAD渲染未配置")
            return

        images, failed = render_all(
            self.cad_renderer,
            cad_files,
            workers=self.config.concurrency.render_workers,
        )
        for name in failed:
            session.add_flag(f"渲染失败:{name}")
        context["images"] = images

    def _stage_reconcile(self, session: ProcessingSession, context: dict) -> None:
        """按上传顺序匹配已出图的文件名"""
        images = context["images"]
        filenames = [
            name.lower() for name, _ in context["cad_files"] if name.lower() in images
        ]
        self.reconciler.reconcile(filenames, context["layout"], context["quotation_data"])

    def _stage_emit(self, session: ProcessingSession, context: dict) -> None:
        """生成两份工作簿"""
        try:
            context["production_order"] = self.production_emitter.render(
                context["layout"], context["images"]
            )
            context["quotation"] = self.quotation_emitter.render(
                context["quotation_data"], context["images"]
            )
        except Sheet2OrderError:
            raise
        except Exception as e:
            raise GenerationError(f"工作簿生成失败: {e}") from e
