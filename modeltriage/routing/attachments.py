"""
Attachment context and the heuristics the override layer uses to judge
request weight.

The engine never reads attachment bytes itself: an ingestion layer
supplies :class:`Attachment` records (already validated and truncated)
and :meth:`AttachmentContext.from_attachments` condenses them into the
counts, volumes and gists the override rules need.
"""

import os
from typing import Any, List, Literal, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from modeltriage.routing.gists import AttachmentGist, image_gist, text_file_gist

CODE_EXTENSIONS: Tuple[str, ...] = (
    ".ts", ".tsx", ".js", ".jsx", ".py", ".java", ".go", ".rs", ".cpp", ".c", ".h",
)

CODE_KEYWORDS: Tuple[str, ...] = (
    "code",
    "function",
    "implement",
    "debug",
    "error",
    "stack trace",
    "bug",
    "typescript",
    "javascript",
    "python",
    "refactor",
)

COMPLEXITY_KEYWORDS: Tuple[str, ...] = (
    "design",
    "architecture",
    "multi-file",
    "refactor across",
    "performance optimization",
    "security audit",
    "migrate",
    "implement end-to-end",
    "system design",
    "scale",
    "best practices",
    "trade-offs",
    "compare approaches",
    "evaluate",
    "architecture decision",
    "full implementation",
    "production-ready",
)


class Attachment(BaseModel):
    """One uploaded attachment as delivered by the ingestion layer.

    ``extension`` is derived from ``filename`` when omitted.
    """

    model_config = ConfigDict(frozen=True)

    type: Literal["image", "text"]
    filename: str = ""
    content: str = ""
    extension: str = ""

    @model_validator(mode="before")
    @classmethod
    def _derive_extension(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("extension") and data.get("filename"):
            data = dict(data)
            data["extension"] = os.path.splitext(data["filename"])[1].lower()
        return data


class AttachmentContext(BaseModel):
    """Aggregate view of a request's attachments.

    Attributes:
        has_images: At least one image is attached.
        has_text_files: At least one text/code file is attached.
        image_count: Number of images.
        text_file_count: Number of text/code files.
        text_file_types: Extensions of the text files, in upload order.
        attachment_names: Filenames, in upload order.
        total_text_chars: Characters across all text files.
        prompt_chars: Characters in the prompt.
        gists: One gist per attachment, images first.
        code_related: Precomputed code-relatedness, if the caller knows it.
    """

    model_config = ConfigDict(frozen=True)

    has_images: bool = False
    has_text_files: bool = False
    image_count: int = Field(default=0, ge=0)
    text_file_count: int = Field(default=0, ge=0)
    text_file_types: Tuple[str, ...] = Field(default_factory=tuple)
    attachment_names: Tuple[str, ...] = Field(default_factory=tuple)
    total_text_chars: int = Field(default=0, ge=0)
    prompt_chars: int = Field(default=0, ge=0)
    gists: Tuple[AttachmentGist, ...] = Field(default_factory=tuple)
    code_related: Optional[bool] = None

    @model_validator(mode="after")
    def _flags_match_counts(self) -> "AttachmentContext":
        if self.has_images != (self.image_count > 0):
            raise ValueError(
                f"has_images={self.has_images} disagrees with image_count={self.image_count}"
            )
        if self.has_text_files != (self.text_file_count > 0):
            raise ValueError(
                f"has_text_files={self.has_text_files} disagrees with "
                f"text_file_count={self.text_file_count}"
            )
        return self

    @property
    def has_code_files(self) -> bool:
        return any(ext in CODE_EXTENSIONS for ext in self.text_file_types)

    @property
    def primary_gist(self) -> Optional[AttachmentGist]:
        return self.gists[0] if self.gists else None

    @classmethod
    def from_attachments(
        cls,
        prompt: str,
        attachments: Sequence[Attachment],
    ) -> "AttachmentContext":
        """Build a context (and gists) from raw attachment records."""
        images = [a for a in attachments if a.type == "image"]
        texts = [a for a in attachments if a.type == "text"]

        gists: List[AttachmentGist] = [
            image_gist(a.filename or "image", prompt) for a in images
        ]
        gists.extend(
            text_file_gist(a.filename or "file", a.content, a.extension or ".txt")
            for a in texts
            if a.content
        )

        return cls(
            has_images=bool(images),
            has_text_files=bool(texts),
            image_count=len(images),
            text_file_count=len(texts),
            text_file_types=tuple(a.extension for a in texts),
            attachment_names=tuple(a.filename for a in attachments),
            total_text_chars=sum(len(a.content) for a in texts),
            prompt_chars=len(prompt),
            gists=tuple(gists),
        )


def is_lightweight_request(
    context: AttachmentContext,
    image_prompt_chars: int = 100,
    text_prompt_chars: int = 200,
    text_chars: int = 4000,
) -> bool:
    """Return True when the request looks simple.

    Either a short prompt with exactly one image and no files, or a
    short prompt with a small amount of attached text and no images.
    """
    if (
        context.prompt_chars < image_prompt_chars
        and context.image_count == 1
        and context.text_file_count == 0
    ):
        return True
    return (
        context.prompt_chars < text_prompt_chars
        and context.total_text_chars < text_chars
        and context.image_count == 0
    )


def requires_deep_reasoning(
    prompt: str,
    context: AttachmentContext,
    deep_chars: int = 12000,
    multi_file_chars: int = 6000,
) -> bool:
    """Return True when the request needs a deep-reasoning model."""
    if context.total_text_chars > deep_chars:
        return True
    text = prompt.lower()
    if any(keyword in text for keyword in COMPLEXITY_KEYWORDS):
        return True
    return context.has_text_files and context.total_text_chars > multi_file_chars


def is_code_related(prompt: str, context: Optional[AttachmentContext] = None) -> bool:
    """Return True if an attached file or the prompt itself is about code."""
    if context is not None:
        if context.code_related is not None:
            return context.code_related
        if context.has_code_files:
            return True
    text = prompt.lower()
    return any(keyword in text for keyword in CODE_KEYWORDS)
