"""
运行期配置 - 读取 config/runtime.yaml

职责：
- 加载外部能力端点（生成模型/栅格化/CAD渲染）、归一化窗口、生命周期等运行参数
- 加载报价单固定文案（甲乙方信息/付款方式/验收标准/声明）
- 提供环境变量覆盖机制（SHEET2ORDER_ 前缀，嵌套用 __ 分隔）
- 启动前置校验：必需配置缺失时直接失败
"""

from __future__ import annotations

from datetime import date
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, EnvSettingsSource

from ..interfaces import ConfigurationError


class InputMode(str, Enum):
    """模型输入形式"""
    TEXT = "text"        # 归一化文本
    IMAGE = "image"      # 首页栅格图
    HYBRID = "hybrid"    # 文本+首页栅格图


class LLMConfig(BaseModel):
    """生成模型配置"""

    api_key: str = ""
    model: str = "gemini-2.5-flash"
    timeout_sec: int = 300
    input_mode: InputMode = InputMode.TEXT


class RasterizerConfig(BaseModel):
    """栅格化配置（LibreOffice + pdftoppm）"""

    soffice_path: str = ""
    pdftoppm_path: str = ""
    dpi: int = 300
    timeout_sec: int = 300


class RendererConfig(BaseModel):
    """CAD预览渲染服务配置"""

    url: str = ""
    timeout_sec: int = 120


class NormalizerConfig(BaseModel):
    """表格归一化扫描窗口"""

    max_rows: int = 200
    max_cols: int = 50
    empty_row_stop: int = 10


class ConcurrencyConfig(BaseModel):
    """并发配置"""

    render_workers: int = 1


class LifecycleConfig(BaseModel):
    """生命周期配置"""

    cleanup_delay_sec: int = 300
    stale_after_hours: int = 24


class UploadLimitsConfig(BaseModel):
    """上传限制"""

    allowed_exts: list[str] = Field(default_factory=lambda: [".xlsx"])
    max_cad_files: int = 50


class LoggingConfig(BaseModel):
    """日志配置"""

    log_level: str = "INFO"
    log_to_file: bool = False
    log_file: str = "logs/sheet2order.log"


class BoilerplateConfig(BaseModel):
    """报价单固定文案（模型无提取结果时原样保留）"""

    party_a: str = "杭州微影软件有限公司"
    contact_a: str = ""
    tel_a: str = ""
    fax_a: str = ""
    email_a: str = ""
    address_a: str = ""
    party_b: str = "杭州越依模型科技有限公司"
    contact_b: str = "傅士勤"
    tel_b: str = "13777479066"
    fax_b: str = ""
    email_b: str = ""
    address_b: str = "杭州市富阳区东洲工业功能区1号路11号"
    payment_terms: str = "月结30天"
    acceptance_standard: str = "依据甲方2D、3D、说明文档等相关约定文件进行验收"
    notice: str = "此报价单适用于所有杭州海康威视科技有限公司的子公司及关联公司。"
    signature_date: str = ""

    def resolved_signature_date(self, today: date | None = None) -> str:
        """签名日期，未配置时取当天（YYYY年M月D日）"""
        if self.signature_date:
            return self.signature_date
        d = today or date.today()
        return f"{d.year}年{d.month}月{d.day}日"


class RuntimeConfig(BaseSettings):
    """运行期配置（支持环境变量覆盖）"""

    # 基础路径
    base_dir: Path = Path(".")
    storage_dir: Path = Path("storage")
    runtime_spec_path: Path = Path("config/runtime.yaml")

    # 各子配置
    llm: LLMConfig = Field(default_factory=LLMConfig)
    rasterizer: RasterizerConfig = Field(default_factory=RasterizerConfig)
    renderer: RendererConfig = Field(default_factory=RendererConfig)
    normalizer: NormalizerConfig = Field(default_factory=NormalizerConfig)
    concurrency: ConcurrencyConfig = Field(default_factory=ConcurrencyConfig)
    lifecycle: LifecycleConfig = Field(default_factory=LifecycleConfig)
    upload_limits: UploadLimitsConfig = Field(default_factory=UploadLimitsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    boilerplate: BoilerplateConfig = Field(default_factory=BoilerplateConfig)

    model_config = {
        "env_prefix": "SHEET2ORDER_",
        "env_nested_delimiter": "__",
        "arbitrary_types_allowed": True,
    }

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> RuntimeConfig:
        """从YAML文件加载配置"""
        path = Path(yaml_path)
        if not path.exists():
            return cls()

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        runtime_opts = data.get("runtime_options", {})

        # 优先级：环境变量 > YAML > 默认值
        env_values = EnvSettingsSource(cls)()
        config = cls()
        for key in (
            "llm",
            "rasterizer",
            "renderer",
            "normalizer",
            "concurrency",
            "lifecycle",
            "upload_limits",
            "logging",
        ):
            current = getattr(config, key)
            merged = {
                **current.model_dump(),
                **cls._extract(runtime_opts, key),
                **env_values.get(key, {}),
            }
            setattr(config, key, type(current)(**merged))
        config.boilerplate = BoilerplateConfig(
            **{
                **config.boilerplate.model_dump(),
                **cls._extract(data, "boilerplate"),
                **env_values.get("boilerplate", {}),
            }
        )
        if "storage_dir" in runtime_opts and "storage_dir" not in env_values:
            config.storage_dir = Path(runtime_opts["storage_dir"])

        config._resolve_paths(base_dir=path.parent)
        return config

    @staticmethod
    def _extract(data: dict[str, Any], key: str) -> dict[str, Any]:
        """提取并展平配置"""
        section = data.get(key) or {}
        result = {}
        for k, v in section.items():
            if isinstance(v, dict) and "default" in v:
                result[k] = v["default"]
            elif not isinstance(v, dict):
                result[k] = v
        return result

    def _resolve_paths(self, base_dir: Path) -> None:
        """解析相对路径配置为绝对路径（基于配置文件所在目录）"""
        for attr in ("soffice_path", "pdftoppm_path"):
            value = getattr(self.rasterizer, attr)
            # 裸命令名（如 soffice）交给 PATH 查找
            if value and ("/" in value or "\\" in value) and not Path(value).is_absolute():
                setattr(self.rasterizer, attr, str((base_dir / value).resolve()))

    def validate_required(self) -> None:
        """前置校验：必需配置缺失时抛出 ConfigurationError"""
        missing = []
        if not self.llm.api_key:
            missing.append("llm.api_key")
        if self.llm.input_mode in (InputMode.IMAGE, InputMode.HYBRID):
            if not self.rasterizer.soffice_path:
                missing.append("rasterizer.soffice_path")
            if not self.rasterizer.pdftoppm_path:
                missing.append("rasterizer.pdftoppm_path")
        if missing:
            raise ConfigurationError(f"缺少必需配置: {', '.join(missing)}")

    def get_sessions_root(self) -> Path:
        """会话根目录"""
        return self.storage_dir / "sessions"

    def get_session_dir(self, session_id: str) -> Path:
        """获取会话工作目录"""
        return self.get_sessions_root() / session_id

    def ensure_dirs(self) -> None:
        """确保必要目录存在"""
        self.storage_dir.mkdir(parents=True, exist_ok=True)
        self.get_sessions_root().mkdir(exist_ok=True)


# 全局配置实例
_config: RuntimeConfig | None = None


def get_config() -> RuntimeConfig:
    """获取全局配置（惰性加载）"""
    global _config
    if _config is None:
        _config = RuntimeConfig.from_yaml(Path("config/runtime.yaml"))
    return _config


def reload_config(yaml_path: str | Path | None = None) -> RuntimeConfig:
    """重新加载配置"""
    global _config
    path = yaml_path or "config/runtime.yaml"
    _config = RuntimeConfig.from_yaml(path)
    return _config
