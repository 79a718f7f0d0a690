"""内容生成（Deck Writer）智能体：将主题与风格交给 Gemini，生成结构化的演示文稿。

核心职责：
- 使用 Gemini 模型根据主题与风格一次性生成 `DeckOutline`（标题、副标题、主题色、各页内容）；
- 遇到限流（HTTP 429）时按指数退避重试，其余失败立即抛出；
- 对模型输出做确定性的后处理，得到可渲染的 `Presentation`。

实现要点：
- 通过 `ChatPromptTemplate` 设定输出规范，并用 `with_structured_output(DeckOutline)` 强制结构化；
- 未知的版式、缺失字段或空列表在这里（入口处）被拒绝，而不是留到渲染时；
- `animationTheme` 固定为 `fade`，`imageUrl` 只在此处由 `imageQuery` 派生；
- 流式接口的输出统一使用 `self.format_response(...)` 封装。
"""

import json
from typing import AsyncIterable, Any, Optional

from dotenv import load_dotenv
from langchain_core.prompts import ChatPromptTemplate
from langchain_google_genai import ChatGoogleGenerativeAI
from pydantic import ValidationError

from ai_deck.common.base_agent import BaseAgent
from ai_deck.common.config import DeckSettings
from ai_deck.common.errors import GenerationError
from ai_deck.common.types import (
    AnimationTheme,
    DeckOutline,
    GenerationRequest,
    Presentation,
    Slide,
    SlideStyle,
)
from ai_deck.common.utils import build_image_url, get_logger, init_api_key

# 自动加载 .env 文件，确保环境变量（如 API Key）可用
load_dotenv()

logger = get_logger(__name__)

DECK_PROMPT = """
Generate a comprehensive, professional, and COLORFUL presentation about: "{topic}".
The style should be {style}.
Provide a title, a subtitle, a themeColor (hex, e.g. #2563EB) and at least 10-12 slides with deep, structured content.

IMAGE GENERATION LOGIC (CRITICAL):
1. CONTEXTUAL MATCHING: Parse the specific headings, bullet points, and explanations of EACH slide. Identify the most unique entity, action, or concept on THAT slide.
2. GRANULAR RELEVANCE: Distinguish clearly between subtopics. If a slide is about "History", use vintage/historical imagery. If it's about "Healthcare", use medical/clinical imagery.
3. QUALITY & PROFESSIONALISM: Always aim for "high-resolution professional stock photography". AVOID clipart, cartoons, or generic "business people shaking hands" unless specifically relevant.
4. CONSISTENT AESTHETIC: Ensure the "visualDescription" for all slides suggests a consistent lighting, tone, and color palette (aligned with the themeColor).
5. IMAGE QUERY FORMAT: Provide a "imageQuery" as a comma-separated list of 2-3 concrete keywords.

EXAMPLES:
- Slide: "Neural Network Architecture" -> Query: "synapse,circuitry,glowing"
- Slide: "Patient Care in 2025" -> Query: "doctor,tablet,hospital,modern"
- Slide: "The First Computers" -> Query: "mainframe,vintage,1950s"

For each slide:
1. A compelling title.
2. A list of 3-5 key bullet points (content). For a 'quote' slide, content[0] is the quote and content[1] the attribution.
3. A "deep explanation" paragraph (100-150 words).
4. A "visualDescription" - A one-sentence description of a professional stock photo that reinforces the slide's specific message.
5. An "imageQuery" - 2-3 specific keywords (comma-separated) derived from the visualDescription.
6. A suggested layout: 'title', 'content', 'two-column', 'image-right', 'image-left', 'quote', 'comparison', 'timeline'.
7. Optional speaker notes.
"""


def build_presentation_from_outline(
    outline: DeckOutline,
    style: SlideStyle,
    settings: Optional[DeckSettings] = None,
) -> Presentation:
    """模型输出的后处理（纯函数）：固定切换效果并派生每页的 `imageUrl`。"""
    settings = settings or DeckSettings()
    slides = [
        Slide(
            title=draft.title,
            content=list(draft.content),
            explanation=draft.explanation,
            visual_description=draft.visual_description,
            image_query=draft.image_query,
            image_url=build_image_url(
                draft.image_query,
                base_url=settings.image_base_url,
                width=settings.image_width,
                height=settings.image_height,
            ),
            layout=draft.layout,
            notes=draft.notes or None,
        )
        for draft in outline.slides
    ]
    return Presentation(
        title=outline.title,
        subtitle=outline.subtitle,
        theme_color=outline.theme_color,
        animation_theme=AnimationTheme.FADE,
        style=style,
        slides=slides,
    )


class DeckWriterAgent(BaseAgent):
    """内容生成智能体：负责把主题转换为完整的演示文稿。"""
    def __init__(self, settings: Optional[DeckSettings] = None, chain=None, sleep=None):
        super().__init__(
            agent_name="PPT Deck Writer",
            description="Generates a complete, structured slide deck for a topic."
        )
        self.settings = settings or DeckSettings()
        self._sleep = sleep
        if chain is None:
            # 验证外部模型所需的 API Key 是否存在
            init_api_key()
            self.llm = ChatGoogleGenerativeAI(
                model=self.settings.model, temperature=self.settings.temperature
            )
            self.prompt = ChatPromptTemplate.from_template(DECK_PROMPT)
            # 通过 LangChain 的结构化输出能力，确保返回符合 `DeckOutline` 模型
            chain = self.prompt | self.llm.with_structured_output(DeckOutline)
        self.chain = chain

    async def generate(self, topic: str, style: SlideStyle = SlideStyle.CORPORATE) -> Presentation:
        """根据主题与风格生成演示文稿。

        参数：
            topic: 演示文稿主题（自由文本）。
            style: 风格标签，只影响生成，不影响渲染。

        返回：
            完整构建的 `Presentation`；不会暴露部分结果。

        异常：
            RateLimited: 限流重试全部耗尽。
            GenerationError: 模型不可用、返回为空或输出不符合结构。
        """
        if not topic or not topic.strip():
            raise GenerationError("Topic must not be empty")
        style = SlideStyle(style)
        logger.info(f"Generating presentation for topic: {topic} (style: {style.value})")

        async def invoke():
            return await self.chain.ainvoke({"topic": topic.strip(), "style": style.value})

        retry_kwargs = {"sleep": self._sleep} if self._sleep is not None else {}
        try:
            raw = await self.settings.retry.call(invoke, **retry_kwargs)
        except GenerationError:
            raise
        except Exception as e:
            logger.error(f"Error generating presentation: {e}")
            raise GenerationError(f"Failed to generate presentation content: {e}") from e

        outline = self._parse_outline(raw)
        presentation = build_presentation_from_outline(outline, style, self.settings)
        logger.info(f"Presentation generated successfully: {len(presentation.slides)} slides")
        return presentation

    @staticmethod
    def _parse_outline(raw: Any) -> DeckOutline:
        """把模型返回（对象、字典或 JSON 文本）校验为 `DeckOutline`。"""
        if raw is None or raw == "":
            raise GenerationError("Failed to generate presentation content")
        if isinstance(raw, DeckOutline):
            return raw
        try:
            if isinstance(raw, str):
                return DeckOutline.model_validate_json(raw)
            if hasattr(raw, "model_dump"):
                raw = raw.model_dump(by_alias=True)
            return DeckOutline.model_validate(raw)
        except ValidationError as e:
            logger.error(f"Generated content does not match the deck schema: {e}")
            raise GenerationError("Generated content does not match the deck schema",
                                  context={"errors": e.errors()}) from e

    async def stream(
        self, query: str, context_id: str, task_id: str
    ) -> AsyncIterable[dict[str, Any]]:
        """流式生成演示文稿。

        参数：
            query: 主题文本，或包含 `topic`/`style` 的 JSON 字符串。
            context_id: 会话上下文标识。
            task_id: 任务标识。

        返回：
            通过 `yield` 返回 `Presentation` 的 JSON（camelCase 字段），或错误文本。
        """
        logger.info(f"Received request: {query}")

        # 简单解析输入：优先解析 JSON，其次纯文本作为主题
        try:
            if query.lstrip().startswith("{"):
                request = GenerationRequest(**json.loads(query))
            else:
                request = GenerationRequest(topic=query)
        except (json.JSONDecodeError, ValidationError, TypeError) as e:
            logger.error(f"Failed to parse query: {e}")
            yield self.format_response(f"Error: Could not parse request. {e}")
            return

        try:
            presentation = await self.generate(request.topic, request.style)
            yield self.format_response(presentation.model_dump(mode="json", by_alias=True))
        except GenerationError as e:
            logger.error(f"Error generating presentation: {e}")
            yield self.format_response(f"Error: {e}")
