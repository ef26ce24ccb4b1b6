"""
模板渲染模块
"""
from .template_renderer import render

__all__ = [
    "render",
]
