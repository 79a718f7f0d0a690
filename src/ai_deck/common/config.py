"""运行参数：模型、配图服务、重试与输出目录等设置。

除凭据 `GOOGLE_API_KEY`（由 `.env` / 环境变量提供）外不读取任何环境变量，
所有参数通过构造函数显式传入各智能体。
"""

from dataclasses import dataclass, field

from ai_deck.common.retry import RetryPolicy
from ai_deck.common.utils import DEFAULT_IMAGE_BASE_URL


@dataclass(frozen=True)
class DeckSettings:
    model: str = "gemini-2.0-flash"
    temperature: float = 0.7
    image_base_url: str = DEFAULT_IMAGE_BASE_URL
    image_width: int = 800
    image_height: int = 600
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    # 配图下载可能较慢，单独设置网络超时
    http_timeout: float = 30.0
    output_dir: str = "output"
