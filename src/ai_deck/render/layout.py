"""版式渲染器：把 `Slide` 按 `layout` 标签映射为媒介无关的元素描述（纯函数）。

核心职责：
- 对八种版式做封闭的分派（`_RENDERERS` 表），未知标签回退到默认版式，渲染永不失败；
- 提供交互式预览与 `.pptx` 导出共用的拆分/选取规则：
  `split_halves`（对半拆分，前半取 ceil）、`timeline_items`（最多 4 项）、`image_side`；
- 集中处理公共规则：主题色圆点 + 正文色文字的项目符号、底部斜体讲解说明。

实现要点：
- 位置与尺寸是各版式固定的常量，不随数据变化，保证 16:9 画布下文字与图形互不重叠；
- 单页 `background_color` / `text_color` 只覆盖当前页；`theme_color` 全局生效。
"""

import math
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ai_deck.common.types import AnimationTheme, Presentation, Slide, SlideLayout, normalize_color
from ai_deck.render.elements import (
    COMPARISON_FALLBACKS,
    DEFAULT_BACKGROUND,
    DEFAULT_TEXT_COLOR,
    NEUTRAL_PANEL,
    TINT_ALPHA,
    TITLE_SLIDE_BACKGROUND,
    TITLE_SLIDE_SUBTITLE_COLOR,
    TITLE_SLIDE_TITLE_COLOR,
    BulletList,
    Element,
    Line,
    Picture,
    ShapeBox,
    SlideRender,
    TextBox,
)

MAX_TIMELINE_ITEMS = 4

# 页面网格（英寸）
MARGIN = 0.5
FULL_WIDTH = 9.0
HALF_WIDTH = 4.3
SECOND_COLUMN_X = 5.2
TITLE_Y, TITLE_H = 0.3, 0.8
BODY_Y, BODY_H = 1.2, 3.1
CAPTION_Y, CAPTION_H = 4.45, 0.95
CAPTION_INSET = 0.1
CAPTION_FONT_SIZE, CAPTION_MIN_FONT_SIZE = 11, 7

TIMELINE_SLOT = FULL_WIDTH / MAX_TIMELINE_ITEMS
TIMELINE_LINE_Y = 1.75
TIMELINE_NODE = 0.5


def resolve_layout(tag) -> SlideLayout:
    """标签解析为版式枚举；无法识别的取值回退到 `content`（默认版式）。"""
    if isinstance(tag, SlideLayout):
        return tag
    try:
        return SlideLayout(str(tag).strip().lower())
    except ValueError:
        return SlideLayout.CONTENT


def split_halves(items: Sequence[str]) -> Tuple[List[str], List[str]]:
    """在 ceil(len/2) 处拆分：前半部分为左侧，余下为右侧。"""
    mid = math.ceil(len(items) / 2)
    return list(items[:mid]), list(items[mid:])


def fit_font_size(text: str, w: float, h: float, max_size: int, min_size: int) -> int:
    """估算能让文本放进 w x h 英寸区域的最大字号（磅），不小于 `min_size`。

    按平均字宽 0.5 em、行高 1.2 em 估算，每个换行段落至少占一行。
    """
    for size in range(max_size, min_size - 1, -1):
        per_line = max(1, int(w * 72 / (size * 0.5)))
        lines = sum(max(1, math.ceil(len(part) / per_line)) for part in text.splitlines() or [""])
        if lines * size * 1.2 / 72 <= h:
            return size
    return min_size


def timeline_items(items: Sequence[str]) -> List[str]:
    return list(items[:MAX_TIMELINE_ITEMS])


def image_side(layout) -> Optional[str]:
    """配图所在的一侧：`left`、`right`，非配图版式返回 `None`。"""
    resolved = resolve_layout(layout)
    if resolved is SlideLayout.IMAGE_LEFT:
        return "left"
    if resolved is SlideLayout.IMAGE_RIGHT:
        return "right"
    return None


class _Palette:
    """单页配色：主题色、正文色、背景色以及背景是否被显式覆盖。"""

    def __init__(self, slide: Slide, theme_color: str):
        self.theme = normalize_color(theme_color)
        self.text = slide.text_color or DEFAULT_TEXT_COLOR
        self.background = slide.background_color or DEFAULT_BACKGROUND
        self.has_background = slide.background_color is not None


def _title(slide: Slide, palette: _Palette, x: float = MARGIN, w: float = FULL_WIDTH) -> TextBox:
    return TextBox(
        role="title", x=x, y=TITLE_Y, w=w, h=TITLE_H,
        text=slide.title, font_size=32, bold=True, color=palette.theme,
    )


def _bullets(role: str, items: List[str], palette: _Palette,
             x: float, y: float, w: float, h: float, font_size: int = 16) -> BulletList:
    return BulletList(
        role=role, x=x, y=y, w=w, h=h, items=items, font_size=font_size,
        marker_color=palette.theme, text_color=palette.text,
    )


def _caption(slide: Slide, palette: _Palette, x: float = MARGIN, w: float = FULL_WIDTH,
             panel: bool = False) -> List[Element]:
    """讲解说明：小号斜体，位于主内容区下方；`panel=True` 时带底色面板。"""
    if not slide.explanation:
        return []
    elements: List[Element] = []
    if panel:
        if palette.has_background:
            fill, alpha = palette.background, TINT_ALPHA
        else:
            fill, alpha = NEUTRAL_PANEL, 1.0
        elements.append(ShapeBox(role="caption-panel", x=x, y=CAPTION_Y, w=w, h=CAPTION_H,
                                 fill=fill, alpha=alpha))
    box_w, box_h = w - 2 * CAPTION_INSET, CAPTION_H - CAPTION_INSET
    font_size = fit_font_size(slide.explanation, box_w, box_h, CAPTION_FONT_SIZE, CAPTION_MIN_FONT_SIZE)
    elements.append(TextBox(
        role="caption",
        x=x + CAPTION_INSET, y=CAPTION_Y + CAPTION_INSET / 2, w=box_w, h=box_h,
        text=slide.explanation, font_size=font_size, italic=True, color=palette.text,
        shrink_to_fit=True,
    ))
    return elements


def _render_default(slide: Slide, palette: _Palette) -> List[Element]:
    return [
        _title(slide, palette),
        _bullets("body", list(slide.content), palette, MARGIN, BODY_Y, FULL_WIDTH, BODY_H, font_size=18),
        *_caption(slide, palette, panel=True),
    ]


def _render_image_side(slide: Slide, palette: _Palette) -> List[Element]:
    # 文字半区与默认版式的内容区一致，只是宽度减半
    if image_side(slide.layout) == "left":
        image_x, text_x = MARGIN, SECOND_COLUMN_X
    else:
        image_x, text_x = SECOND_COLUMN_X, MARGIN
    return [
        _title(slide, palette, x=text_x, w=HALF_WIDTH),
        _bullets("body", list(slide.content), palette, text_x, BODY_Y, HALF_WIDTH, BODY_H),
        *_caption(slide, palette, x=text_x, w=HALF_WIDTH, panel=True),
        Picture(role="image", x=image_x, y=BODY_Y, w=HALF_WIDTH, h=BODY_H + 0.1,
                url=slide.image_url, alt=slide.image_query),
    ]


def _render_two_column(slide: Slide, palette: _Palette) -> List[Element]:
    left, right = split_halves(slide.content)
    return [
        _title(slide, palette),
        _bullets("column", left, palette, MARGIN, BODY_Y, HALF_WIDTH, BODY_H),
        _bullets("column", right, palette, SECOND_COLUMN_X, BODY_Y, HALF_WIDTH, BODY_H),
        *_caption(slide, palette),
    ]


def _render_comparison(slide: Slide, palette: _Palette) -> List[Element]:
    elements: List[Element] = [_title(slide, palette)]
    for side, (items, x) in enumerate(zip(split_halves(slide.content), (MARGIN, SECOND_COLUMN_X))):
        if palette.has_background:
            fill, alpha = palette.background, TINT_ALPHA
        else:
            fill, alpha = COMPARISON_FALLBACKS[side], 1.0
        elements.append(ShapeBox(role="panel", x=x, y=BODY_Y, w=HALF_WIDTH, h=BODY_H,
                                 fill=fill, alpha=alpha))
        elements.append(_bullets(
            "column", items, palette,
            x + CAPTION_INSET, BODY_Y + CAPTION_INSET,
            HALF_WIDTH - 2 * CAPTION_INSET, BODY_H - 2 * CAPTION_INSET,
        ))
    elements.extend(_caption(slide, palette))
    return elements


def _render_quote(slide: Slide, palette: _Palette) -> List[Element]:
    elements: List[Element] = [_title(slide, palette)]
    body = slide.content[0] if slide.content else ""
    elements.append(TextBox(
        role="quote", x=1.0, y=1.3, w=8.0, h=1.9,
        text=f'"{body}"', font_size=36, italic=True, color=palette.theme, align="center",
    ))
    if len(slide.content) > 1 and slide.content[1]:
        elements.append(TextBox(
            role="attribution", x=1.0, y=3.3, w=8.0, h=0.6,
            text=f"— {slide.content[1]}", font_size=20, color=palette.text, align="right",
        ))
    elements.extend(_caption(slide, palette))
    return elements


def _render_timeline(slide: Slide, palette: _Palette) -> List[Element]:
    elements: List[Element] = [
        _title(slide, palette),
        Line(role="connector", x=MARGIN, y=TIMELINE_LINE_Y, w=FULL_WIDTH, h=0.0,
             color=palette.theme, width_pt=2.0),
    ]
    # 槽位宽度固定，节点间距与数量无关
    for idx, item in enumerate(timeline_items(slide.content)):
        slot_x = MARGIN + idx * TIMELINE_SLOT
        elements.append(ShapeBox(
            role="node", shape="ellipse",
            x=slot_x + (TIMELINE_SLOT - TIMELINE_NODE) / 2,
            y=TIMELINE_LINE_Y - TIMELINE_NODE / 2,
            w=TIMELINE_NODE, h=TIMELINE_NODE, fill=palette.theme,
        ))
        elements.append(TextBox(
            role="node-caption", x=slot_x, y=2.2, w=TIMELINE_SLOT, h=1.2,
            text=item, font_size=14, bold=True, color=palette.text, align="center",
        ))
    elements.extend(_caption(slide, palette))
    return elements


_RENDERERS: Dict[SlideLayout, Callable[[Slide, _Palette], List[Element]]] = {
    SlideLayout.TITLE: _render_default,
    SlideLayout.CONTENT: _render_default,
    SlideLayout.TWO_COLUMN: _render_two_column,
    SlideLayout.IMAGE_RIGHT: _render_image_side,
    SlideLayout.IMAGE_LEFT: _render_image_side,
    SlideLayout.QUOTE: _render_quote,
    SlideLayout.COMPARISON: _render_comparison,
    SlideLayout.TIMELINE: _render_timeline,
}


def render_slide(
    slide: Slide,
    theme_color: str,
    deck_animation: AnimationTheme = AnimationTheme.FADE,
) -> SlideRender:
    """渲染单页内容幻灯片。

    参数：
        slide: 待渲染的幻灯片；其 `layout` 若无法识别则按默认版式渲染。
        theme_color: 整份演示文稿的主题色。
        deck_animation: 整份演示文稿的默认切换效果。

    返回：
        `SlideRender`，元素按绘制顺序排列（先绘制的在下层）。
    """
    layout = resolve_layout(slide.layout)
    palette = _Palette(slide, theme_color)
    if slide.layout is not layout:
        # 未知或非规范标签：统一为解析后的枚举，供后续 `image_side` 等规则使用
        slide = slide.model_copy(update={"layout": layout})
    return SlideRender(
        layout=layout,
        background=palette.background,
        transition=slide.effective_animation(deck_animation),
        notes=slide.notes or None,
        elements=_RENDERERS[layout](slide, palette),
    )


def render_title_slide(presentation: Presentation) -> SlideRender:
    """封面：标题与副标题居中，固定的中性背景。"""
    return SlideRender(
        background=TITLE_SLIDE_BACKGROUND,
        transition=presentation.animation_theme,
        elements=[
            TextBox(role="title", x=1.0, y=2.0, w=8.0, h=1.1, text=presentation.title,
                    font_size=44, bold=True, color=TITLE_SLIDE_TITLE_COLOR, align="center"),
            TextBox(role="subtitle", x=1.0, y=3.3, w=8.0, h=0.8, text=presentation.subtitle,
                    font_size=24, color=TITLE_SLIDE_SUBTITLE_COLOR, align="center"),
        ],
    )


def render_deck(presentation: Presentation) -> List[SlideRender]:
    """封面 + 按顺序渲染的每一页内容幻灯片。"""
    renders = [render_title_slide(presentation)]
    for slide in presentation.slides:
        renders.append(render_slide(slide, presentation.theme_color, presentation.animation_theme))
    return renders
