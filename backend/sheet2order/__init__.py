"""
越依 生产单/报价单 自动生成系统 - 后端核心模块

模块结构：
- config/     运行期配置加载
- models/     数据模型定义（生产单布局/报价单/会话）
- extract/    表格归一化、提示词构建、模型输出解析、零件图片匹配
- llm/        生成模型调用（流式拼接）
- convert/    外部能力适配（文档栅格化/CAD预览渲染）
- doc_gen/    文档生成（生产单/报价单 Excel）
- pipeline/   流水线编排与会话管理
- api/        FastAPI 接口层
"""

__version__ = "0.1.0"
