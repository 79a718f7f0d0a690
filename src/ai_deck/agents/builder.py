"""排版构建（Builder）智能体：将 `Presentation` 写入 `.pptx` 文件。

核心职责：
- 生成 16:9 的封面页，随后按顺序为每页幻灯片生成一页内容；
- 每页内容完全来自 `ai_deck.render.layout` 的渲染描述，与交互式预览逐页一致；
- 下载并嵌入配图、写入演讲者备注与切换效果；
- 输出最终文件到 `output/` 目录，文件名由标题派生，返回保存路径。

实现要点：
- 使用 `python-pptx` 的空白版式，以文本框、形状、连线、图片绘制各元素；
- 整份文档先在内存中构建完成，最后一次性落盘；任一页失败则整体抛出 `ExportError`，
  不会留下不完整的文件；
- 导出只读取 `Presentation`，从不修改它。
"""

import json
from io import BytesIO
from pathlib import Path
from typing import AsyncIterable, Any, Mapping, Optional

from lxml import etree
from pptx import Presentation as PptxPresentation
from pptx.dml.color import RGBColor
from pptx.enum.shapes import MSO_CONNECTOR, MSO_SHAPE
from pptx.enum.text import MSO_ANCHOR, MSO_AUTO_SIZE, PP_ALIGN
from pptx.oxml.ns import qn
from pptx.util import Inches, Pt
from pydantic import ValidationError

from ai_deck.agents.image_fetcher import ImageFetcher
from ai_deck.common.base_agent import BaseAgent
from ai_deck.common.config import DeckSettings
from ai_deck.common.errors import ExportError
from ai_deck.common.types import AnimationTheme, Presentation
from ai_deck.common.utils import deck_filename, get_logger
from ai_deck.render.elements import (
    SLIDE_HEIGHT,
    SLIDE_WIDTH,
    BulletList,
    Line,
    Picture,
    ShapeBox,
    SlideRender,
    TextBox,
)
from ai_deck.render.layout import render_deck

logger = get_logger(__name__)

_ALIGN = {"left": PP_ALIGN.LEFT, "center": PP_ALIGN.CENTER, "right": PP_ALIGN.RIGHT}
_SHAPES = {"rect": MSO_SHAPE.RECTANGLE, "ellipse": MSO_SHAPE.OVAL}
# 切换效果 -> PresentationML 元素（标签, 属性）
_TRANSITIONS = {
    AnimationTheme.FADE: ("p:fade", {}),
    AnimationTheme.SLIDE: ("p:push", {"dir": "l"}),
    AnimationTheme.ZOOM: ("p:zoom", {}),
    AnimationTheme.BOUNCE: ("p:cover", {"dir": "u"}),
}
BLANK_LAYOUT_INDEX = 6


def _rgb(color: str) -> RGBColor:
    return RGBColor.from_string(color.lstrip("#"))


class DeckBuilderAgent(BaseAgent):
    """PPT 构建智能体：将 `Presentation` 落盘为 `.pptx`。"""
    def __init__(
        self,
        settings: Optional[DeckSettings] = None,
        fetcher: Optional[ImageFetcher] = None,
        output_dir: Optional[str] = None,
    ):
        super().__init__(
            agent_name="PPT Builder",
            description="Compiles a generated presentation into a PowerPoint file."
        )
        self.settings = settings or DeckSettings()
        self.output_dir = Path(output_dir or self.settings.output_dir)
        self.fetcher = fetcher or ImageFetcher(timeout=self.settings.http_timeout)

    async def export(self, presentation: Presentation) -> Path:
        """导出整份演示文稿并返回保存路径。

        参数：
            presentation: 待导出的演示文稿（不会被修改）。

        返回：
            `<output_dir>/<标题>.pptx` 的路径。

        异常：
            ExportError: 配图下载、文档构建或写盘任一环节失败。
        """
        logger.info(f"Exporting presentation: {presentation.title}")
        renders = render_deck(presentation)
        urls = [element.url for render in renders for element in render.elements
                if isinstance(element, Picture)]

        try:
            images = dict(zip(urls, await self.fetcher.fetch_all(urls)))
            data = self._to_bytes(self._build(renders, images))
        except ExportError:
            raise
        except Exception as e:
            logger.error(f"Failed to build presentation {presentation.title}: {e}")
            raise ExportError(f"Failed to build presentation: {e}") from e

        output_path = self.output_dir / deck_filename(presentation.title)
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            output_path.write_bytes(data)
        except OSError as e:
            logger.error(f"Failed to write {output_path}: {e}")
            raise ExportError(f"Failed to write presentation file: {output_path}") from e

        logger.info(f"Presentation saved to: {output_path}")
        return output_path

    def build_presentation(self, presentation: Presentation, images: Mapping[str, bytes]):
        """根据演示文稿构建 `python-pptx` 文档（不落盘、不联网）。

        参数：
            presentation: 演示文稿。
            images: 配图地址 -> 图片字节；每个配图版式的 `imageUrl` 都必须存在。
        """
        try:
            return self._build(render_deck(presentation), images)
        except ExportError:
            raise
        except Exception as e:
            raise ExportError(f"Failed to build presentation: {e}") from e

    def _build(self, renders: list[SlideRender], images: Mapping[str, bytes]):
        prs = PptxPresentation()
        prs.slide_width = Inches(SLIDE_WIDTH)
        prs.slide_height = Inches(SLIDE_HEIGHT)

        for render in renders:
            slide = prs.slides.add_slide(prs.slide_layouts[BLANK_LAYOUT_INDEX])
            fill = slide.background.fill
            fill.solid()
            fill.fore_color.rgb = _rgb(render.background)

            for element in render.elements:
                if isinstance(element, TextBox):
                    self._add_text(slide, element)
                elif isinstance(element, BulletList):
                    self._add_bullets(slide, element)
                elif isinstance(element, ShapeBox):
                    self._add_shape(slide, element)
                elif isinstance(element, Line):
                    self._add_line(slide, element)
                elif isinstance(element, Picture):
                    if element.url not in images:
                        raise ExportError(f"Missing image data for {element.url}",
                                          context={"url": element.url})
                    slide.shapes.add_picture(
                        BytesIO(images[element.url]),
                        Inches(element.x), Inches(element.y), Inches(element.w), Inches(element.h),
                    )

            # 写入演讲者备注（notes 页面），没有备注时不创建
            if render.notes:
                slide.notes_slide.notes_text_frame.text = render.notes

            if render.transition is not None:
                self._set_transition(slide, render.transition)

        return prs

    @staticmethod
    def _to_bytes(prs) -> bytes:
        buffer = BytesIO()
        prs.save(buffer)
        return buffer.getvalue()

    @staticmethod
    def _text_frame(slide, element):
        box = slide.shapes.add_textbox(
            Inches(element.x), Inches(element.y), Inches(element.w), Inches(element.h)
        )
        tf = box.text_frame
        tf.word_wrap = True
        tf.vertical_anchor = MSO_ANCHOR.TOP
        return tf

    def _add_text(self, slide, element: TextBox):
        tf = self._text_frame(slide, element)
        if element.shrink_to_fit:
            # 讲解段落较长，超出时由 PowerPoint 继续缩小字号
            tf.auto_size = MSO_AUTO_SIZE.TEXT_TO_FIT_SHAPE
        p = tf.paragraphs[0]
        p.alignment = _ALIGN[element.align]
        run = p.add_run()
        run.text = element.text
        run.font.size = Pt(element.font_size)
        run.font.bold = element.bold
        run.font.italic = element.italic
        run.font.color.rgb = _rgb(element.color)

    def _add_bullets(self, slide, element: BulletList):
        tf = self._text_frame(slide, element)
        for i, item in enumerate(element.items):
            p = tf.paragraphs[0] if i == 0 else tf.add_paragraph()
            marker = p.add_run()
            marker.text = "• "
            marker.font.size = Pt(element.font_size)
            marker.font.color.rgb = _rgb(element.marker_color)
            run = p.add_run()
            run.text = item
            run.font.size = Pt(element.font_size)
            run.font.color.rgb = _rgb(element.text_color)

    @staticmethod
    def _add_shape(slide, element: ShapeBox):
        shape = slide.shapes.add_shape(
            _SHAPES[element.shape],
            Inches(element.x), Inches(element.y), Inches(element.w), Inches(element.h),
        )
        shape.line.fill.background()
        shape.fill.solid()
        shape.fill.fore_color.rgb = _rgb(element.fill)
        if element.alpha < 1.0:
            # python-pptx 没有透明度接口，直接写入 a:alpha
            srgb = shape._element.spPr.find(qn("a:solidFill")).find(qn("a:srgbClr"))
            alpha = etree.SubElement(srgb, qn("a:alpha"))
            alpha.set("val", str(int(round(element.alpha * 100000))))

    @staticmethod
    def _add_line(slide, element: Line):
        connector = slide.shapes.add_connector(
            MSO_CONNECTOR.STRAIGHT,
            Inches(element.x), Inches(element.y),
            Inches(element.x + element.w), Inches(element.y + element.h),
        )
        connector.line.color.rgb = _rgb(element.color)
        connector.line.width = Pt(element.width_pt)

    @staticmethod
    def _set_transition(slide, theme: AnimationTheme):
        tag, attrs = _TRANSITIONS[AnimationTheme(theme)]
        transition = etree.SubElement(slide._element, qn("p:transition"))
        transition.set("spd", "med")
        effect = etree.SubElement(transition, qn(tag))
        for key, value in attrs.items():
            effect.set(key, value)

    async def stream(
        self, query: str, context_id: str, task_id: str
    ) -> AsyncIterable[dict[str, Any]]:
        """流式构建 `.pptx` 文件：接收 `Presentation` JSON，生成文件并返回路径。"""
        logger.info("Received request to build PPT")

        try:
            presentation = Presentation.model_validate(json.loads(query))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.error(f"Failed to parse presentation: {e}")
            yield self.format_response(f"Error: Could not parse presentation. {e}")
            return

        try:
            output_path = await self.export(presentation)
            yield self.format_response(f"Presentation built successfully: {output_path}")
        except ExportError as e:
            logger.error(f"Error building PPT: {e}")
            yield self.format_response(f"Error: {e}")
