"""
Imagination Sheet 合成引擎 - 后端核心模块

模块结构：
- config/     运行期配置与版型预设加载
- models/     数据模型定义（Sheet/Layer/画布状态）
- layout/     DPI校验、自动排版、智能填充（纯函数）
- editor/     图层集合、撤销/重做、版型目录
- session/    编辑会话、保存/自动保存、缩略图、结算交接
"""

__version__ = "0.1.0"
