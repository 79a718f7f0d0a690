"""编排器（Orchestrator）：单个会话内串联“生成 → 编辑 → 导出”的完整流程。

核心职责：
- 调用 Deck Writer 生成 `Presentation`，并作为会话当前的演示文稿持有；
- 以复制后替换的方式应用允许的编辑（整份切换效果、单页切换效果与配色）；
- 调用 Builder 导出 `.pptx`，导出失败不影响当前演示文稿；
- 在流式接口中逐步输出过程状态，便于客户端实时展示进度。

重要约束与约定：
- 同一会话同一时刻只有一个有效的生成操作；每次生成领取一个递增的令牌，
  令牌过期（有更新的生成、`abandon()` 或 `reset()`）时返回的结果被丢弃，不会覆盖更新的演示文稿；
- 不做在途请求的协作式取消，只保证过期结果不破坏会话状态；
- 每次生成都得到独立的 `Presentation` 实例，会话之间没有共享的可变状态。
"""

from pathlib import Path
from typing import AsyncIterable, Any, Optional

from ai_deck.agents.builder import DeckBuilderAgent
from ai_deck.agents.deck_writer import DeckWriterAgent
from ai_deck.common.base_agent import BaseAgent
from ai_deck.common.errors import ExportError, GenerationError
from ai_deck.common.types import AnimationTheme, Presentation, SlideStyle
from ai_deck.common.utils import get_logger

logger = get_logger(__name__)


class DeckSession(BaseAgent):
    """项目经理（编排器）：持有一个会话内的当前演示文稿。"""
    def __init__(self, writer: DeckWriterAgent, builder: Optional[DeckBuilderAgent] = None):
        super().__init__(
            agent_name="PPT Project Manager",
            description="Manages generation, editing and export of a presentation for one session."
        )
        self.writer = writer
        self.builder = builder or DeckBuilderAgent(settings=writer.settings)
        self.presentation: Optional[Presentation] = None
        self._generation = 0
        self._active: Optional[int] = None

    @property
    def is_generating(self) -> bool:
        return self._active is not None

    async def generate(self, topic: str, style: SlideStyle = SlideStyle.CORPORATE) -> Optional[Presentation]:
        """生成新的演示文稿并设为当前演示文稿。

        返回：
            新的 `Presentation`；若本次生成在完成前已被放弃（过期），返回 `None` 且不修改会话。

        异常：
            GenerationError: 生成失败（仅当本次生成仍然有效时抛出）。
        """
        self._generation += 1
        token = self._generation
        self._active = token
        logger.info(f"【收到请求】开始生成演示文稿（#{token}），主题：\"{topic}\"")

        try:
            result = await self.writer.generate(topic, style)
        except GenerationError:
            if token != self._generation:
                logger.warning(f"【结果丢弃】生成 #{token} 已被放弃，忽略其失败")
                return None
            raise
        finally:
            if self._active == token:
                self._active = None

        if token != self._generation:
            logger.warning(f"【结果丢弃】生成 #{token} 已过期，当前为 #{self._generation}")
            return None

        self.presentation = result
        logger.info(f"【生成完成】#{token} 共 {len(result.slides)} 页")
        return result

    def abandon(self):
        """放弃进行中的生成：其结果到达后将被丢弃。"""
        self._generation += 1
        self._active = None

    def reset(self):
        """结束会话：放弃进行中的生成并丢弃当前演示文稿。"""
        self.abandon()
        self.presentation = None

    def _require_presentation(self) -> Presentation:
        if self.presentation is None:
            raise ValueError("No presentation has been generated in this session")
        return self.presentation

    def set_animation_theme(self, theme: AnimationTheme) -> Presentation:
        self.presentation = self._require_presentation().with_animation_theme(theme)
        return self.presentation

    def set_slide_animation(self, index: int, animation: Optional[AnimationTheme]) -> Presentation:
        self.presentation = self._require_presentation().with_slide_overrides(index, animation=animation)
        return self.presentation

    def set_slide_colors(
        self,
        index: int,
        background_color: Optional[str] = None,
        text_color: Optional[str] = None,
    ) -> Presentation:
        """替换单页背景色和/或文字色；未传入的字段保持不变。"""
        overrides = {}
        if background_color is not None:
            overrides["background_color"] = background_color
        if text_color is not None:
            overrides["text_color"] = text_color
        self.presentation = self._require_presentation().with_slide_overrides(index, **overrides)
        return self.presentation

    async def export(self) -> Path:
        """导出当前演示文稿。失败时抛出 `ExportError`，当前演示文稿保持可用。"""
        return await self.builder.export(self._require_presentation())

    async def stream(
        self, query: str, context_id: str = "", task_id: str = "",
        style: SlideStyle = SlideStyle.CORPORATE,
    ) -> AsyncIterable[dict[str, Any]]:
        """以流式方式完成“生成 + 导出”，并逐步输出状态消息。

        参数：
            query: 用户输入的主题。
            context_id: 会话上下文标识（用于链路追踪）。
            task_id: 本次任务标识（用于链路追踪）。
            style: 风格标签。

        返回：
            通过 `yield` 逐步返回格式化的状态消息，最终返回导出文件路径或错误信息。
        """
        topic = query.strip()
        yield self.format_response(f"【项目启动】开始处理演示文稿，主题：\"{topic}\"", is_complete=False)

        try:
            yield self.format_response("【流程进度】第 1 步：生成内容...", is_complete=False)
            presentation = await self.generate(topic, style)
            if presentation is None:
                yield self.format_response("【已放弃】本次生成已被新的请求取代。")
                return
            yield self.format_response(f"【内容就绪】已生成 {len(presentation.slides)} 页。", is_complete=False)

            yield self.format_response("【流程进度】第 2 步：构建最终文件...", is_complete=False)
            output_path = await self.builder.export(presentation)
            yield self.format_response(f"【项目完成】PPT 生成完毕！ {output_path}")

        except (GenerationError, ExportError) as e:
            stage = "generate" if isinstance(e, GenerationError) else "export"
            logger.error(f"【编排异常】{stage} failed: {e}")
            yield self.format_response(f"Error: {e}")
