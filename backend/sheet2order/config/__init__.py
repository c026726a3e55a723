"""
配置层 - 加载运行期配置

职责：
- 加载 config/runtime.yaml（运行期参数与报价单固定文案）
- 环境变量覆盖（SHEET2ORDER_ 前缀）
- 提供类型安全的配置访问接口与前置校验
"""

from .runtime_config import (
    BoilerplateConfig,
    InputMode,
    LLMConfig,
    RasterizerConfig,
    RendererConfig,
    RuntimeConfig,
    get_config,
    reload_config,
)

__all__ = [
    "BoilerplateConfig",
    "InputMode",
    "LLMConfig",
    "RasterizerConfig",
    "RendererConfig",
    "RuntimeConfig",
    "get_config",
    "reload_config",
]
