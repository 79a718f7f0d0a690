"""渲染描述：与具体媒介无关的幻灯片几何/视觉元素。

`ai_deck.render.layout` 产出这些元素，交互式预览与 `.pptx` 导出都只消费它们，
从而保证两种媒介逐页结构一致。坐标与尺寸单位均为英寸，画布为 16:9（10 x 5.625）。
颜色一律为 `#RRGGBB`；`alpha` 取值 0-1，1 表示不透明。
"""

from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from ai_deck.common.types import AnimationTheme, SlideLayout

SLIDE_WIDTH = 10.0
SLIDE_HEIGHT = 5.625

DEFAULT_BACKGROUND = "#FFFFFF"
DEFAULT_TEXT_COLOR = "#363636"
NEUTRAL_PANEL = "#F4F4F5"
COMPARISON_FALLBACKS = ("#F8F9FA", "#E9ECEF")
TINT_ALPHA = 0.2

TITLE_SLIDE_BACKGROUND = "#F1F1F1"
TITLE_SLIDE_TITLE_COLOR = "#363636"
TITLE_SLIDE_SUBTITLE_COLOR = "#666666"

BULLET_MARKER = "•"


class _Element(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: str
    x: float
    y: float
    w: float
    h: float


class TextBox(_Element):
    kind: Literal["text"] = "text"
    text: str
    font_size: int
    color: str
    bold: bool = False
    italic: bool = False
    align: Literal["left", "center", "right"] = "left"
    # 导出时文本框按形状收缩字号
    shrink_to_fit: bool = False


class BulletList(_Element):
    """项目符号列表：圆点使用主题色，文字使用正文色。"""
    kind: Literal["bullets"] = "bullets"
    items: List[str]
    font_size: int
    marker_color: str
    text_color: str


class ShapeBox(_Element):
    kind: Literal["shape"] = "shape"
    shape: Literal["rect", "ellipse"] = "rect"
    fill: str
    alpha: float = 1.0


class Line(_Element):
    """水平/垂直连线：起点 (x, y)，终点 (x + w, y + h)。"""
    kind: Literal["line"] = "line"
    color: str
    width_pt: float = 2.0


class Picture(_Element):
    kind: Literal["image"] = "image"
    url: str
    alt: str = ""


Element = Annotated[Union[TextBox, BulletList, ShapeBox, Line, Picture], Field(discriminator="kind")]


class SlideRender(BaseModel):
    """单页渲染结果：背景、切换效果、备注以及按绘制顺序排列的元素。"""
    model_config = ConfigDict(frozen=True)

    layout: Optional[SlideLayout] = None
    background: str
    transition: Optional[AnimationTheme] = None
    notes: Optional[str] = None
    elements: List[Element] = Field(default_factory=list)

    def by_role(self, role: str) -> List[Element]:
        return [element for element in self.elements if element.role == role]
