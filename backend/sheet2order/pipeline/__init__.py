"""
流水线模块 - 会话编排与执行

子模块：
- stages: 流水线各阶段定义
- executor: 流水线执行器
- session_manager: 会话创建与清理
"""

from .executor import PipelineExecutor, PipelineResult
from .session_manager import SessionManager, new_session_id
from .stages import EXTRACTION_STAGES, PipelineStage, StageEnum, stages_for

__all__ = [
    "EXTRACTION_STAGES",
    "PipelineStage",
    "StageEnum",
    "stages_for",
    "PipelineExecutor",
    "PipelineResult",
    "SessionManager",
    "new_session_id",
]
