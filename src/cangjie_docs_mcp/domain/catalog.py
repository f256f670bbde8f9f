"""Immutable corpus catalog: category tables, learning paths and keyword vocabulary.

A catalog is built once and handed to the parser, the segmenter and the
suggestion engine at construction. Nothing reads a module-level table, so
tests can run several corpora side by side with different catalogs.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from cangjie_docs_mcp.domain.model import DocumentCategory


DEFAULT_KEYWORD_GROUPS: tuple[tuple[str, ...], ...] = (
    ("函数", "function", "方法", "method"),
    ("类", "class", "对象", "object"),
    ("接口", "interface"),
    ("变量", "variable", "常量", "constant"),
    ("数组", "array", "列表", "list", "集合", "set", "字典", "map"),
    ("循环", "loop", "条件", "condition", "判断", "if", "for", "while"),
    ("字符串", "string", "整数", "integer", "浮点", "float", "布尔", "boolean"),
    ("并发", "concurrency", "异步", "async", "协程", "coroutine"),
    ("错误", "error", "异常", "exception", "处理", "handle"),
    ("包", "package", "模块", "module", "库", "library"),
)

DEFAULT_STOP_WORDS: frozenset[str] = frozenset(
    {
        # Chinese function words
        "的", "了", "在", "是", "我", "有", "和", "就", "不", "人",
        "都", "一", "一个", "上", "也", "很", "到", "说",
        # English function words
        "the", "a", "an", "and", "or", "but", "in", "on", "at", "to",
        "for", "of", "with", "by", "as", "is", "are", "was", "were", "be",
        "been", "being", "have", "has", "had", "do", "does", "did", "will", "would",
        "could", "should", "may", "might", "can", "this", "that", "these", "those", "i",
        "you", "he", "she", "it", "we", "they", "what", "which", "who", "when",
        "where", "why", "how", "all", "each", "every", "both", "few", "more",
        "most", "other", "some", "such", "only", "own", "same", "so", "than",
        "too", "very", "just", "now",
    }
)  # fmt: skip


class CorpusCatalog(BaseModel):
    """Static knowledge about the corpus layout.

    Fields:
        category_names: Display name per category
        category_descriptions: One-line synopsis per category
        subcategory_categories: Categories whose second path component is a subcategory
        learning_paths: Stage name -> ordered path prefixes, most basic first
        beginner_subcategories: Manual subcategories offered as prerequisites
        beginner_markers / advanced_markers: Context words that pick a learning stage
        keyword_groups: Technical vocabulary scanned for document keywords
        stop_words: Tokens dropped by the analyzer
    """

    model_config = ConfigDict(frozen=True)

    category_names: dict[DocumentCategory, str] = Field(
        default_factory=lambda: {
            DocumentCategory.MANUAL: "Language Manual",
            DocumentCategory.LIBS: "Standard Library API",
            DocumentCategory.TOOLS: "Development Tools",
            DocumentCategory.EXTRA: "Extra Topics",
            DocumentCategory.OHOS: "OpenHarmony",
        }
    )
    category_descriptions: dict[DocumentCategory, str] = Field(
        default_factory=lambda: {
            DocumentCategory.MANUAL: "Cangjie language tutorials and programming concepts",
            DocumentCategory.LIBS: "Cangjie standard library API reference",
            DocumentCategory.TOOLS: "Cangjie development tool documentation",
            DocumentCategory.EXTRA: "Advanced topics and best practices",
            DocumentCategory.OHOS: "Cangjie development for OpenHarmony",
        }
    )
    subcategory_categories: frozenset[DocumentCategory] = frozenset(
        {DocumentCategory.MANUAL, DocumentCategory.LIBS, DocumentCategory.OHOS}
    )
    learning_paths: dict[str, tuple[str, ...]] = Field(
        default_factory=lambda: {
            "beginner": (
                "manual/first_understanding",
                "manual/basic_data_type",
                "manual/basic_programming_concepts",
                "manual/function",
            ),
            "intermediate": (
                "manual/class_and_interface",
                "manual/collections",
                "libs/std",
            ),
            "advanced": (
                "manual/concurrency",
                "manual/compile_and_build",
                "extra",
            ),
        }
    )
    beginner_subcategories: frozenset[str] = frozenset({"first_understanding", "basic_data_type"})
    entry_subcategory: str = "first_understanding"
    beginner_markers: tuple[str, ...] = ("入门", "基础", "beginner", "basic")
    advanced_markers: tuple[str, ...] = ("高级", "进阶", "advanced")
    keyword_groups: tuple[tuple[str, ...], ...] = DEFAULT_KEYWORD_GROUPS
    stop_words: frozenset[str] = DEFAULT_STOP_WORDS

    def display_name(self, category: DocumentCategory) -> str:
        return self.category_names.get(category, category.value)

    def learning_stage(self, context: str) -> str:
        """Pick the learning stage whose marker words appear in `context`."""
        lowered = context.lower()
        if any(marker in lowered for marker in self.beginner_markers):
            return "beginner"
        if any(marker in lowered for marker in self.advanced_markers):
            return "advanced"
        return "intermediate"


DEFAULT_CATALOG = CorpusCatalog()
