"""
模板渲染模块
"""
from pathlib import Path
from typing import Any, Dict

from jinja2 import Environment, FileSystemLoader, StrictUndefined

TEMPLATE_DIR = Path(__file__).resolve().parent

env = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    trim_blocks=True,  # 移除模板标签后的第一个换行
    lstrip_blocks=True,  # 移除模板标签前的空格
    keep_trailing_newline=True,  # 描述文本以换行结尾
    undefined=StrictUndefined,
)


def render(template: str, ctx: Dict[str, Any]) -> str:
    """
    渲染模板

    Args:
        template: 模板文件名
        ctx: 模板上下文

    Returns:
        str: 渲染后的文本
    """
    return env.get_template(template).render(**ctx)
