"""公共工具函数：统一日志配置、外部 API Key 检查以及若干纯函数派生规则。

包含：
- `get_logger`：配置并返回指定名称的 `logging.Logger`；
- `init_api_key`：检查必需的环境变量（`GOOGLE_API_KEY`），缺失时抛错；
- `build_image_url`：由 `imageQuery` 派生配图地址；
- `deck_filename`：由演示文稿标题派生导出文件名。
"""

import os
import re
import logging
from urllib.parse import quote

DEFAULT_IMAGE_BASE_URL = "https://loremflickr.com"
IMAGE_QUALITY_QUALIFIERS = ("professional", "stock")
# 路径分隔符、Windows 保留字符与控制字符
_UNSAFE_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|\x00-\x1f]')


def get_logger(name: str) -> logging.Logger:
    """获取带统一格式的 Logger。

    行为：
    - 设置日志级别为 INFO；
    - 设置日志格式包含时间、模块名、级别与消息；
    - 返回指定名称的 Logger。
    """
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    return logging.getLogger(name)


def init_api_key():
    """检查外部模型所需的 API Key 是否存在。

    使用 Google Gemini，需要环境变量 `GOOGLE_API_KEY`；
    兼容 `GEMINI_API_KEY`，存在时复制到 `GOOGLE_API_KEY` 供 LangChain 读取。
    若均未设置则抛出 `ValueError`，防止后续运行失败。
    """
    if not os.getenv("GOOGLE_API_KEY") and os.getenv("GEMINI_API_KEY"):
        os.environ["GOOGLE_API_KEY"] = os.environ["GEMINI_API_KEY"]
    if not os.getenv("GOOGLE_API_KEY"):
        raise ValueError("GOOGLE_API_KEY environment variable is not set")


def build_image_url(
    image_query: str,
    base_url: str = DEFAULT_IMAGE_BASE_URL,
    width: int = 800,
    height: int = 600,
) -> str:
    """由逗号分隔的关键词派生配图地址（纯函数，不会失败）。

    关键词先去除首尾空白再整体编码（与 `encodeURIComponent` 一致），
    其后追加固定的质量限定词 `professional,stock`。
    """
    encoded = quote(image_query.strip(), safe="-_.!~*'()")
    keywords = ",".join((encoded,) + IMAGE_QUALITY_QUALIFIERS)
    return f"{base_url.rstrip('/')}/{width}/{height}/{keywords}/all"


def deck_filename(title: str, extension: str = ".pptx") -> str:
    """由标题派生文件名：连续空白替换为单个下划线，路径分隔符等文件名非法字符替换为下划线。

    结果只是单个文件名，拼接到输出目录后不会落到其他目录中。
    """
    name = re.sub(r"\s+", "_", title.strip())
    name = _UNSAFE_FILENAME_CHARS.sub("_", name)
    return name + extension
