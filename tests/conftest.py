"""Pytest 配置与公共夹具。"""

from io import BytesIO

import pytest
from PIL import Image

from ai_deck.common.types import Presentation, Slide, SlideLayout
from ai_deck.common.utils import build_image_url


class ProviderError(Exception):
    """模拟模型 SDK 抛出的 HTTP 异常。"""

    def __init__(self, status_code: int, message: str = "provider error"):
        self.status_code = status_code
        super().__init__(f"{status_code} {message}")


class FakeChain:
    """按顺序返回预设结果（或抛出预设异常）的结构化输出链。"""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    async def ainvoke(self, inputs):
        self.calls.append(inputs)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class StubFetcher:
    """替代 `ImageFetcher`，为每个地址返回同一份图片数据（或抛出预设异常）。"""

    def __init__(self, data=None, error=None):
        self.data = data
        self.error = error
        self.requested = []

    async def fetch_all(self, urls):
        self.requested.append(list(urls))
        if self.error is not None:
            raise self.error
        return [self.data for _ in urls]


class SleepRecorder:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


def outline_payload(layout="content", slides=1, **overrides):
    """模型返回的 camelCase 原始结构。"""
    payload = {
        "title": "Q1 Report",
        "subtitle": "Quarterly results",
        "themeColor": "#2563eb",
        "slides": [
            {
                "title": f"Slide {i + 1}",
                "content": ["Revenue up", "Costs down", "Hiring on track"],
                "explanation": "A longer paragraph explaining the slide.",
                "visualDescription": "A chart on a desk in soft light.",
                "imageQuery": "chart,desk",
                "layout": layout,
            }
            for i in range(slides)
        ],
    }
    payload.update(overrides)
    return payload


def make_slide(layout=SlideLayout.CONTENT, content=None, **overrides):
    fields = {
        "title": "Growth",
        "content": ["One", "Two", "Three"] if content is None else content,
        "explanation": "Why growth matters.",
        "visual_description": "A rising arrow.",
        "image_query": "arrow,growth",
        "image_url": build_image_url("arrow,growth"),
        "layout": layout,
    }
    fields.update(overrides)
    return Slide(**fields)


def make_presentation(*slides, **overrides):
    fields = {
        "title": "Q1 Report",
        "subtitle": "Quarterly results",
        "theme_color": "#2563EB",
        "slides": list(slides) or [make_slide()],
    }
    fields.update(overrides)
    return Presentation(**fields)


@pytest.fixture
def image_bytes():
    buffer = BytesIO()
    Image.new("RGB", (80, 60), color=(120, 40, 200)).save(buffer, format="JPEG")
    return buffer.getvalue()


@pytest.fixture
def sleep_recorder():
    return SleepRecorder()
