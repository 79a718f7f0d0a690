"""公共数据模型：描述演示文稿生成与渲染过程中的核心结构。

包含：
- `SlideStyle` / `AnimationTheme` / `SlideLayout`：封闭枚举，取值即线上协议中的标签；
- `SlideDraft` / `DeckOutline`：模型（Gemini）必须返回的结构化输出；
- `Slide` / `Presentation`：后处理完成、可供渲染与导出的演示文稿；
- `GenerationRequest`：生成请求的参数结构。

约定：
- Python 属性使用 snake_case，`alias` 使用 camelCase，与模型输出字段逐字一致；
- `Slide` / `Presentation` 为不可变对象，允许的两类编辑均以“复制后替换”的方式返回新对象。
"""

import re
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


_HEX_COLOR = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


def normalize_color(value: str) -> str:
    """将颜色统一为大写 `#RRGGBB`，非法取值抛出 `ValueError`。"""
    match = _HEX_COLOR.match(value.strip())
    if not match:
        raise ValueError(f"Invalid color value: {value!r}")
    digits = match.group(1)
    if len(digits) == 3:
        digits = "".join(c * 2 for c in digits)
    return f"#{digits.upper()}"


def _require_text(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value


def _check_quote_body(layout, content: List[str]) -> None:
    # 引用版式以 content[0] 作为引文正文
    if layout is SlideLayout.QUOTE and (not content or not content[0].strip()):
        raise ValueError("quote layout requires the quote text as content[0]")


class SlideStyle(str, Enum):
    CORPORATE = "corporate"
    EDUCATIONAL = "educational"
    CREATIVE = "creative"
    MINIMALIST = "minimalist"


class AnimationTheme(str, Enum):
    FADE = "fade"
    SLIDE = "slide"
    ZOOM = "zoom"
    BOUNCE = "bounce"


class SlideLayout(str, Enum):
    TITLE = "title"
    CONTENT = "content"
    TWO_COLUMN = "two-column"
    IMAGE_RIGHT = "image-right"
    IMAGE_LEFT = "image-left"
    QUOTE = "quote"
    COMPARISON = "comparison"
    TIMELINE = "timeline"


class SlideDraft(BaseModel):
    """模型返回的单页幻灯片（尚未派生 `imageUrl`）。"""
    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(description="幻灯片标题")
    content: List[str] = Field(description="要点列表，含义取决于 layout")
    explanation: str = Field(description="100-150 词的深入讲解段落")
    visual_description: str = Field(alias="visualDescription", description="一句话描述配图")
    image_query: str = Field(
        alias="imageQuery",
        description="Comma-separated keywords, e.g., 'robot,circuitry'",
    )
    layout: SlideLayout = Field(
        description="One of: 'title', 'content', 'two-column', 'image-right', "
                    "'image-left', 'quote', 'comparison', 'timeline'"
    )
    notes: Optional[str] = Field(default=None, description="演讲者备注")

    @model_validator(mode="after")
    def _check_quote(self) -> "SlideDraft":
        _check_quote_body(self.layout, self.content)
        return self


class DeckOutline(BaseModel):
    """模型返回的整份演示文稿结构。"""
    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(min_length=1, description="演示文稿标题")
    subtitle: str = Field(min_length=1, description="副标题")
    theme_color: str = Field(alias="themeColor", description="主题强调色，如 #2563EB")
    slides: List[SlideDraft] = Field(min_length=1, description="幻灯片列表")

    @field_validator("title", "subtitle")
    @classmethod
    def _check_text(cls, value: str) -> str:
        return _require_text(value)

    @field_validator("theme_color")
    @classmethod
    def _check_theme_color(cls, value: str) -> str:
        return normalize_color(value)


class Slide(BaseModel):
    """单页幻灯片：归属于 `Presentation`，按下标寻址，没有独立身份。"""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    title: str
    content: List[str]
    explanation: str
    visual_description: str = Field(alias="visualDescription")
    image_query: str = Field(alias="imageQuery")
    image_url: str = Field(alias="imageUrl")
    background_color: Optional[str] = Field(default=None, alias="backgroundColor")
    text_color: Optional[str] = Field(default=None, alias="textColor")
    layout: SlideLayout
    animation: Optional[AnimationTheme] = None
    notes: Optional[str] = None

    @field_validator("background_color", "text_color")
    @classmethod
    def _check_color(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return normalize_color(value)

    @model_validator(mode="after")
    def _check_quote(self) -> "Slide":
        _check_quote_body(self.layout, self.content)
        return self

    def effective_animation(self, deck_theme: AnimationTheme) -> AnimationTheme:
        """单页覆盖优先，否则使用整份演示文稿的默认切换效果。"""
        return self.animation or deck_theme


class Presentation(BaseModel):
    """整份演示文稿（根聚合）。创建后只允许下列两类复制式编辑。"""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    title: str = Field(min_length=1)
    subtitle: str = Field(min_length=1)
    theme_color: str = Field(alias="themeColor")
    animation_theme: AnimationTheme = Field(default=AnimationTheme.FADE, alias="animationTheme")
    style: SlideStyle = SlideStyle.CORPORATE
    slides: List[Slide] = Field(min_length=1)

    @field_validator("title", "subtitle")
    @classmethod
    def _check_text(cls, value: str) -> str:
        return _require_text(value)

    @field_validator("theme_color")
    @classmethod
    def _check_theme_color(cls, value: str) -> str:
        return normalize_color(value)

    def with_animation_theme(self, theme: AnimationTheme) -> "Presentation":
        """替换整份演示文稿的默认切换效果；各页自己的 `animation` 保持不变。"""
        return self.model_copy(update={"animation_theme": AnimationTheme(theme)})

    def with_slide_overrides(self, index: int, **overrides) -> "Presentation":
        """替换单页的 `animation` / `background_color` / `text_color`。

        传入 `None` 表示清除覆盖、回退到默认值。返回新的 `Presentation`，
        原对象及其 `slides` 列表不受影响。
        """
        allowed = {"animation", "background_color", "text_color"}
        unknown = set(overrides) - allowed
        if unknown:
            raise ValueError(f"Unsupported slide override(s): {sorted(unknown)}")
        if not 0 <= index < len(self.slides):
            raise IndexError(f"Slide index {index} out of range (0..{len(self.slides) - 1})")

        update = dict(overrides)
        for key in ("background_color", "text_color"):
            if update.get(key) is not None:
                update[key] = normalize_color(update[key])
        if update.get("animation") is not None:
            update["animation"] = AnimationTheme(update["animation"])

        slides = list(self.slides)
        slides[index] = slides[index].model_copy(update=update)
        return self.model_copy(update={"slides": slides})


class GenerationRequest(BaseModel):
    """演示文稿生成请求参数结构。"""
    topic: str
    style: SlideStyle = SlideStyle.CORPORATE
