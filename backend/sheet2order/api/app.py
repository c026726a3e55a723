"""
HTTP 接口层 - FastAPI

接口：
- POST /api/process-xlsx  multipart: file（.xlsx，必填）+ stpFiles（CAD文件，0..n）
  成功返回两份工作簿（base64）及诊断信息；失败统一返回 {"error": <消息>}
- GET  /health

处理顺序：配置前置校验（500）→ 上传校验（400）→ 会话作用域内执行流水线。
会话目录在作用域退出时安排清理，无论成功与否；启动时清理超龄残留会话。

测试要点：
- test_missing_config_returns_500
- test_invalid_extension_returns_400
- test_process_xlsx_success
"""

from __future__ import annotations

import argparse
import asyncio
import base64
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import uvicorn
from fastapi import FastAPI, File, Request, UploadFile
from fastapi.responses import JSONResponse

from .. import __version__
from ..config import RuntimeConfig, get_config, reload_config
from ..interfaces import (
    ConfigurationError,
    InputValidationError,
    Sheet2OrderError,
)
from ..logging_setup import setup_logging
from ..pipeline import PipelineExecutor, PipelineResult, SessionManager

logger = logging.getLogger(__name__)

MISSING_CONFIG_MESSAGE = "Missing server configuration."


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def build_response(result: PipelineResult) -> dict[str, Any]:
    """流水线产物 → 响应体"""
    payload: dict[str, Any] = {
        "productionOrderBase64": _b64(result.production_order),
        "quotationBase64": _b64(result.quotation),
        "parsedExcelText": result.transcript,
        "rawOutput": result.raw_output,
        "flags": result.flags,
    }
    if result.preview_image is not None:
        payload["previewImageBase64"] = _b64(result.preview_image)
    return payload


def create_app(
    config: RuntimeConfig | None = None,
    *,
    executor: PipelineExecutor | None = None,
    session_manager: SessionManager | None = None,
) -> FastAPI:
    """创建应用（外部能力可通过 executor 注入替换）"""
    config = config or get_config()
    sessions = session_manager or SessionManager(config)
    pipeline = executor or PipelineExecutor(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        config.ensure_dirs()
        sessions.purge_stale()
        yield
        sessions.flush()

    app = FastAPI(title="sheet2order", version=__version__, lifespan=lifespan)

    @app.exception_handler(Sheet2OrderError)
    async def _handle_error(request: Request, exc: Sheet2OrderError) -> JSONResponse:
        if isinstance(exc, ConfigurationError):
            logger.error(f"配置缺失: {exc}")
            return JSONResponse(status_code=500, content={"error": MISSING_CONFIG_MESSAGE})
        if isinstance(exc, InputValidationError):
            return JSONResponse(status_code=400, content={"error": str(exc)})
        return JSONResponse(status_code=500, content={"error": str(exc)})

    @app.get("/health")
    async def health():
        return {"status": "ok", "version": __version__}

    @app.post("/api/process-xlsx")
    async def process_xlsx(
        file: UploadFile | None = File(None),
        stp_files: list[UploadFile] | None = File(None, alias="stpFiles"),
    ):
        config.validate_required()

        allowed = tuple(ext.lower() for ext in config.upload_limits.allowed_exts)
        if file is None or not file.filename or not file.filename.lower().endswith(allowed):
            raise InputValidationError(f"Invalid file. Upload '{', '.join(allowed)}'.")
        spreadsheet_bytes = await file.read()
        if not spreadsheet_bytes:
            raise InputValidationError(f"Invalid file. Upload '{', '.join(allowed)}'.")

        cad_files: list[tuple[str, bytes]] = []
        for upload in stp_files or []:
            if upload.filename:
                cad_files.append((upload.filename, await upload.read()))
        if len(cad_files) > config.upload_limits.max_cad_files:
            raise InputValidationError(
                f"Too many CAD files: {len(cad_files)} > {config.upload_limits.max_cad_files}."
            )

        try:
            result = await asyncio.to_thread(
                _run_pipeline, sessions, pipeline, file.filename, spreadsheet_bytes, cad_files
            )
        except Sheet2OrderError:
            raise
        except Exception as e:
            logger.exception(f"处理失败: {file.filename}")
            raise Sheet2OrderError(f"处理失败: {e}") from e

        return build_response(result)

    return app


def _run_pipeline(
    sessions: SessionManager,
    pipeline: PipelineExecutor,
    spreadsheet_name: str,
    spreadsheet_bytes: bytes,
    cad_files: list[tuple[str, bytes]],
) -> PipelineResult:
    with sessions.session_scope(spreadsheet_name, spreadsheet_bytes, cad_files) as session:
        return pipeline.execute(session)


def main(argv: list[str] | None = None) -> int:
    """命令行启动服务"""
    parser = argparse.ArgumentParser(description="sheet2order HTTP 服务")
    parser.add_argument(
        "--config", type=Path, default=Path("config/runtime.yaml"), help="运行期配置"
    )
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    args = parser.parse_args(argv)

    config = reload_config(args.config)
    setup_logging(config)
    uvicorn.run(create_app(config), host=args.host, port=args.port)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
