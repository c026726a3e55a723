"""
流水线阶段定义

职责：
1. 定义各阶段名称与进度区间
2. 按输入形式（text/image/hybrid）裁剪不适用的阶段

测试要点：
- test_text_mode_skips_rasterize: 文本模式不栅格化
- test_image_mode_skips_normalize: 图片模式不归一化
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from ..config import InputMode


class StageEnum(str, Enum):
    """流水线阶段枚举"""
    INGEST = "INGEST"
    NORMALIZE = "NORMALIZE"
    RASTERIZE = "RASTERIZE"
    BUILD_PROMPT = "BUILD_PROMPT"
    COMPLETE = "COMPLETE"
    EXTRACT = "EXTRACT"
    RENDER_CAD = "RENDER_CAD"
    RECONCILE = "RECONCILE"
    EMIT = "EMIT"


@dataclass
class PipelineStage:
    """流水线阶段"""
    name: str
    progress_start: int  # 进度起点（0-100）
    progress_end: int    # 进度终点
    modes: frozenset[InputMode] = field(default_factory=lambda: frozenset(InputMode))

    def applies_to(self, mode: InputMode) -> bool:
        return mode in self.modes


_TEXT_MODES = frozenset({InputMode.TEXT, InputMode.HYBRID})
_IMAGE_MODES = frozenset({InputMode.IMAGE, InputMode.HYBRID})

# 抽取流水线各阶段配置
EXTRACTION_STAGES: list[PipelineStage] = [
    PipelineStage(StageEnum.INGEST.value, 0, 5),
    PipelineStage(StageEnum.NORMALIZE.value, 5, 10, _TEXT_MODES),
    PipelineStage(StageEnum.RASTERIZE.value, 10, 20, _IMAGE_MODES),
    PipelineStage(StageEnum.BUILD_PROMPT.value, 20, 25),
    PipelineStage(StageEnum.COMPLETE.value, 25, 70),
    PipelineStage(StageEnum.EXTRACT.value, 70, 75),
    PipelineStage(StageEnum.RENDER_CAD.value, 75, 85),
    PipelineStage(StageEnum.RECONCILE.value, 85, 90),
    PipelineStage(StageEnum.EMIT.value, 90, 100),
]


def stages_for(mode: InputMode) -> list[PipelineStage]:
    """按输入形式取适用阶段（保持顺序）"""
    return [stage for stage in EXTRACTION_STAGES if stage.applies_to(mode)]
