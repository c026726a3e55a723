"""
CAD预览渲染 - 调用外部渲染服务，取返回归档中的第一张图片

职责：
1. multipart POST（字段名 file，带原始文件名）到渲染服务
2. 响应为 zip 归档，取第一张 .png/.jpg/.jpeg 成员
3. 批量渲染：有界线程池并发，单文件失败只记录不中断；结果按小写文件名聚合

依赖：
- requests: HTTP 调用
- zipfile: 解包预览归档

测试要点：
- test_first_image_member: 取归档内第一张图片
- test_non_2xx_raises: 非 2xx 抛 RenderError
- test_render_all_isolates_failures: 单文件失败不影响其他文件
"""

from __future__ import annotations

import io
import logging
import zipfile
from concurrent.futures import ThreadPoolExecutor
from pathlib import PurePosixPath

import requests

from ..config import RendererConfig, get_config
from ..interfaces import ICADRenderer, RenderError
from ..models import RenderedImage

logger = logging.getLogger(__name__)

IMAGE_SUFFIXES = (".png", ".jpg", ".jpeg")


def first_image_member(archive_bytes: bytes) -> tuple[str, bytes] | None:
    """返回归档中第一张图片（成员名, 内容）；无图片返回 None"""
    try:
        with zipfile.ZipFile(io.BytesIO(archive_bytes)) as zf:
            for info in zf.infolist():
                if info.is_dir():
                    continue
                if info.filename.lower().endswith(IMAGE_SUFFIXES):
                    return info.filename, zf.read(info)
    except zipfile.BadZipFile as e:
        raise RenderError(f"渲染服务返回的不是 zip 归档: {e}") from e
    return None


class HttpCADRenderer(ICADRenderer):
    """HTTP 渲染服务客户端"""

    def __init__(self, config: RendererConfig | None = None):
        self.config = config or get_config().renderer

    @property
    def enabled(self) -> bool:
        return bool(self.config.url)

    def render(self, model_bytes: bytes, filename: str) -> RenderedImage:
        if not self.enabled:
            raise RenderError("未配置渲染服务地址")

        try:
            resp = requests.post(
                self.config.url,
                files={"file": (filename, model_bytes, "application/octet-stream")},
                timeout=self.config.timeout_sec,
            )
        except requests.RequestException as e:
            raise RenderError(f"渲染服务请求失败: {filename}: {e}") from e

        if not resp.ok:
            raise RenderError(
                f"渲染服务返回 {resp.status_code}: {filename}: {resp.text[:200]}"
            )

        member = first_image_member(resp.content)
        if member is None:
            raise RenderError(f"渲染结果中没有图片: {filename}")

        member_name, data = member
        extension = PurePosixPath(member_name).suffix.lstrip(".").lower()
        return RenderedImage(
            source_name=filename,
            data=data,
            extension="jpeg" if extension == "jpg" else extension,
        )


def render_all(
    renderer: ICADRenderer,
    cad_files: list[tuple[str, bytes]],
    workers: int = 1,
) -> tuple[dict[str, RenderedImage], list[str]]:
    """
    批量渲染

    Args:
        renderer: 渲染器
        cad_files: (原始文件名, 内容) 列表
        workers: 并发数（>=1）

    Returns:
        (小写文件名 → 预览图, 失败文件名列表)
    """
    images: dict[str, RenderedImage] = {}
    failed: list[str] = []
    if not cad_files:
        return images, failed

    def _one(item: tuple[str, bytes]) -> tuple[str, RenderedImage | None]:
        name, data = item
        try:
            return name, renderer.render(data, name)
        except RenderError as e:
            logger.warning(f"CAD渲染失败: {name}: {e}")
            return name, None

    with ThreadPoolExecutor(max_workers=max(1, workers)) as pool:
        for name, image in pool.map(_one, cad_files):
            if image is None:
                failed.append(name)
            else:
                images[name.lower()] = image

    logger.info(f"CAD渲染完成: 成功 {len(images)}, 失败 {len(failed)}")
    return images, failed
