"""
会话模型 - 单次上传的处理状态与临时目录生命周期

一次上传对应一个会话：
- 会话ID = 毫秒时间戳 + 6位随机后缀，隔离临时文件命名空间
- 截止时间到达后会话目录被无条件删除（无论处理成功与否）
"""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field


class SessionStatus(str, Enum):
    """会话状态枚举"""
    CREATED = "created"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class SessionProgress(BaseModel):
    """会话进度"""
    stage: str = "INIT"
    percent: int = 0
    message: str = ""


class ProcessingSession(BaseModel):
    """处理会话"""
    session_id: str = Field(..., description="时间戳-随机后缀")

    # 输入
    spreadsheet_path: Path
    cad_paths: list[Path] = Field(default_factory=list)
    work_dir: Path

    # 状态
    status: SessionStatus = SessionStatus.CREATED
    progress: SessionProgress = Field(default_factory=SessionProgress)

    # 结果
    flags: list[str] = Field(default_factory=list, description="告警标记")
    errors: list[str] = Field(default_factory=list, description="错误信息")

    # 时间戳
    created_at: datetime = Field(default_factory=datetime.now)
    deadline: datetime | None = None
    finished_at: datetime | None = None

    model_config = {"arbitrary_types_allowed": True}

    def set_deadline(self, delay_sec: float) -> None:
        """设置清理截止时间"""
        self.deadline = datetime.now() + timedelta(seconds=delay_sec)

    def mark_running(self, stage: str = "INGEST") -> None:
        """标记为运行中"""
        self.status = SessionStatus.RUNNING
        self.progress.stage = stage

    def mark_succeeded(self) -> None:
        """标记为成功"""
        self.status = SessionStatus.SUCCEEDED
        self.finished_at = datetime.now()
        self.progress.percent = 100

    def mark_failed(self, error: str) -> None:
        """标记为失败"""
        self.status = SessionStatus.FAILED
        self.finished_at = datetime.now()
        self.errors.append(error)

    def add_flag(self, flag: str) -> None:
        """添加告警标记（不中断）"""
        if flag not in self.flags:
            self.flags.append(flag)
