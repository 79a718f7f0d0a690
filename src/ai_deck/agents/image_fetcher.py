"""配图获取（Image Fetcher）：下载幻灯片配图并规范化为可嵌入 `.pptx` 的 PNG。

核心职责：
- 通过 `httpx` 下载 `imageUrl` 指向的图片（配图服务会重定向到实际图片地址）；
- 使用 PIL 解码并统一转存为 PNG，过滤掉非图片响应；
- 批量下载时保持与输入相同的顺序，不受完成先后影响。

实现要点：
- 下载或解码失败统一抛出 `ExportError`，由构建阶段决定整体失败；
- 允许注入 `httpx.AsyncClient`（测试中配合 `MockTransport` 使用）。
"""

import asyncio
from io import BytesIO
from typing import List, Optional, Sequence

import httpx
from PIL import Image, UnidentifiedImageError

from ai_deck.common.errors import ExportError
from ai_deck.common.utils import get_logger

logger = get_logger(__name__)


class ImageFetcher:
    """配图下载器。"""

    def __init__(self, timeout: float = 30.0, client: Optional[httpx.AsyncClient] = None):
        self.timeout = timeout
        self._client = client

    async def fetch(self, url: str) -> bytes:
        """下载单张图片并返回 PNG 字节。"""
        logger.info(f"Fetching image: {url}")
        try:
            if self._client is not None:
                response = await self._client.get(url, follow_redirects=True)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(url, follow_redirects=True)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Failed to fetch image {url}: {e}")
            raise ExportError(f"Failed to fetch image: {url}", context={"url": url}) from e

        return self._to_png(response.content, url)

    async def fetch_all(self, urls: Sequence[str]) -> List[bytes]:
        """并发下载多张图片；返回顺序与 `urls` 一致。"""
        return list(await asyncio.gather(*(self.fetch(url) for url in urls)))

    def _to_png(self, data: bytes, url: str) -> bytes:
        """用 PIL 校验并转存为 PNG。"""
        try:
            with Image.open(BytesIO(data)) as img:
                if img.mode not in ("RGB", "RGBA"):
                    img = img.convert("RGB")
                buffer = BytesIO()
                img.save(buffer, format="PNG")
        except (UnidentifiedImageError, OSError) as e:
            logger.error(f"Response from {url} is not a usable image: {e}")
            raise ExportError(f"Invalid image data: {url}", context={"url": url}) from e
        return buffer.getvalue()
