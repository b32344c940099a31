"""
Value types for the remote conversation: uploaded files, messages, their
content blocks and runs. Gateways convert their SDK objects into these so
the rest of the package never touches provider types directly.
"""
from dataclasses import dataclass, field
from typing import List, Optional, Union, Dict, Any
import logging

LOGGER = logging.getLogger(__name__)

FILE_PURPOSE = "assistants"
CODE_INTERPRETER_TOOLS = [{"type": "code_interpreter"}]

RUN_QUEUED = "queued"
RUN_IN_PROGRESS = "in_progress"
RUN_COMPLETED = "completed"
RUN_FAILED = "failed"
PENDING_RUN_STATUSES = (RUN_QUEUED, RUN_IN_PROGRESS)


@dataclass(frozen=True)
class UploadedFile:
    file_id: str
    file_path: str
    file_hash: str
    mime_type: str
    file_size: Optional[int] = None
    purpose: str = FILE_PURPOSE


@dataclass(frozen=True)
class FilePathAnnotation:
    start_index: int
    end_index: int
    text: str
    file_id: str
    type: str = "file_path"

    @property
    def file_name(self) -> str:
        return self.text.split('/')[-1]


@dataclass(frozen=True)
class TextBlock:
    value: str
    annotations: List[FilePathAnnotation] = field(default_factory=list)
    type: str = "text"


@dataclass(frozen=True)
class ImageFileBlock:
    file_id: str
    type: str = "image_file"


@dataclass(frozen=True)
class UnhandledBlock:
    type: str
    raw: Any = None


ContentBlock = Union[TextBlock, ImageFileBlock, UnhandledBlock]


@dataclass(frozen=True)
class Message:
    message_id: str
    role: str
    content: List[ContentBlock] = field(default_factory=list)
    attachments: List[Dict] = field(default_factory=list)


@dataclass(frozen=True)
class RunError:
    code: str
    message: str


@dataclass(frozen=True)
class Run:
    run_id: str
    thread_id: str
    status: str
    last_error: Optional[RunError] = None

    @property
    def is_pending(self) -> bool:
        return self.status in PENDING_RUN_STATUSES


def make_attachment(file_id: str) -> Dict:
    """One attachment entry per file, each with its own tool list."""
    return {"file_id": file_id, "tools": [dict(tool) for tool in CODE_INTERPRETER_TOOLS]}
