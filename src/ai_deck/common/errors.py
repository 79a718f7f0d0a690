"""异常定义：生成与导出阶段对调用方暴露的错误类型。

层次结构：
- `DeckError`：所有领域异常的基类，携带 `detail` 与可选的 `context`；
- `GenerationError`：模型不可用、返回为空或不符合结构；不重试；
- `RateLimited`：模型限流，重试耗尽后才会抛给调用方；
- `ExportError`：`.pptx` 构建失败（含配图下载失败）。
"""


class DeckError(Exception):
    """领域异常基类。"""

    def __init__(self, detail: str = "An unexpected error occurred", context: dict | None = None):
        self.detail = detail
        self.context = context
        super().__init__(self.detail)


class GenerationError(DeckError):
    """模型返回不可用的内容，或内容未通过结构校验。"""

    pass


class RateLimited(GenerationError):
    """模型限流（HTTP 429），指数退避重试全部失败。"""

    pass


class ExportError(DeckError):
    """演示文稿文件构建失败。调用方当前持有的 `Presentation` 不受影响。"""

    pass
