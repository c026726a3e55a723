"""
会话管理器 - 会话创建、上传文件落盘、到期清理

职责：
1. 创建会话并分配ID（毫秒时间戳-6位base36随机后缀）
2. 上传文件写入会话目录（input/ 表格，cad/ 模型文件）
3. 到期后强制删除会话目录（无论处理成功与否）
4. 启动时清理超龄的残留会话目录

测试要点：
- test_session_id_format: 会话ID格式
- test_create_session_writes_inputs: 文件落盘
- test_session_scope_schedules_cleanup_on_error: 异常时仍安排清理
- test_purge_stale: 超龄目录清理
"""

from __future__ import annotations

import logging
import secrets
import shutil
import string
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from ..config import RuntimeConfig, get_config
from ..interfaces import ISessionManager
from ..models import ProcessingSession

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_lowercase


def new_session_id() -> str:
    """毫秒时间戳 + 6位随机后缀"""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(6))
    return f"{int(time.time() * 1000)}-{suffix}"


def _safe_name(filename: str) -> str:
    """去掉上传文件名中的路径部分"""
    name = Path(filename.replace("\\", "/")).name
    return name or "upload"


class SessionManager(ISessionManager):
    """会话管理器实现"""

    def __init__(self, config: RuntimeConfig | None = None):
        self.config = config or get_config()
        self._timers: dict[str, threading.Timer] = {}
        self._lock = threading.Lock()

    def create_session(
        self,
        spreadsheet_name: str,
        spreadsheet_bytes: bytes,
        cad_files: list[tuple[str, bytes]] | None = None,
        **kwargs: Any,
    ) -> ProcessingSession:
        """创建会话并落盘上传文件"""
        session_id = new_session_id()
        work_dir = self.config.get_session_dir(session_id)

        try:
            input_dir = work_dir / "input"
            input_dir.mkdir(parents=True, exist_ok=True)
            spreadsheet_path = input_dir / _safe_name(spreadsheet_name)
            spreadsheet_path.write_bytes(spreadsheet_bytes)

            cad_paths: list[Path] = []
            if cad_files:
                cad_dir = work_dir / "cad"
                cad_dir.mkdir(exist_ok=True)
                for name, data in cad_files:
                    path = cad_dir / _safe_name(name)
                    path.write_bytes(data)
                    cad_paths.append(path)
        except OSError:
            shutil.rmtree(work_dir, ignore_errors=True)
            raise

        session = ProcessingSession(
            session_id=session_id,
            spreadsheet_path=spreadsheet_path,
            cad_paths=cad_paths,
            work_dir=work_dir,
            **kwargs,
        )
        session.set_deadline(self.config.lifecycle.cleanup_delay_sec)
        logger.info(f"[{session_id}] 会话已创建: {spreadsheet_path.name}, CAD文件 {len(cad_paths)} 个")
        return session

    def schedule_cleanup(self, session: ProcessingSession) -> None:
        """到期后强制删除会话目录"""
        delay = self.config.lifecycle.cleanup_delay_sec
        timer = threading.Timer(delay, self._remove, args=(session.session_id, session.work_dir))
        timer.daemon = True
        with self._lock:
            self._timers[session.session_id] = timer
        timer.start()
        logger.debug(f"[{session.session_id}] 已安排 {delay}s 后清理")

    @contextmanager
    def session_scope(
        self,
        spreadsheet_name: str,
        spreadsheet_bytes: bytes,
        cad_files: list[tuple[str, bytes]] | None = None,
    ) -> Iterator[ProcessingSession]:
        """会话作用域：退出时（含异常）安排清理"""
        session = self.create_session(spreadsheet_name, spreadsheet_bytes, cad_files)
        try:
            yield session
        finally:
            self.schedule_cleanup(session)

    def flush(self) -> int:
        """取消所有待执行的定时清理并立即删除，返回处理的会话数"""
        with self._lock:
            pending = list(self._timers.items())
            self._timers.clear()
        for session_id, timer in pending:
            timer.cancel()
            self._remove(session_id, self.config.get_session_dir(session_id))
        return len(pending)

    def pending_sessions(self) -> list[str]:
        """尚未清理的会话ID"""
        with self._lock:
            return list(self._timers)

    def purge_stale(self) -> int:
        """删除超龄的残留会话目录，返回删除数量"""
        root = self.config.get_sessions_root()
        if not root.exists():
            return 0

        cutoff = time.time() - self.config.lifecycle.stale_after_hours * 3600
        removed = 0
        for entry in root.iterdir():
            if not entry.is_dir():
                continue
            try:
                if entry.stat().st_mtime < cutoff:
                    shutil.rmtree(entry)
                    removed += 1
            except OSError as e:
                logger.warning(f"残留会话清理失败: {entry.name}: {e}")

        if removed:
            logger.info(f"已清理残留会话 {removed} 个")
        return removed

    def _remove(self, session_id: str, work_dir: Path) -> None:
        with self._lock:
            self._timers.pop(session_id, None)
        shutil.rmtree(work_dir, ignore_errors=True)
        logger.info(f"[{session_id}] 会话目录已删除")
