import logging
LOGGER = logging.getLogger(__name__)

from typing import List, Dict, Optional
from assistable.assist.providers.gateway import ResourceGateway
from assistable.assist.content import Message, Run, RunError
import io


class FakeGateway(ResourceGateway):
    """
    In-memory gateway. Run statuses are scripted per run in the order they are
    created; every call is appended to self.calls.
    """

    def __init__(self, statuses: Optional[List[List[str]]] = None, replies: Optional[List[Message]] = None,
                 file_ids: Optional[List[str]] = None, thread_id: str = "t1"):
        self.statuses = [list(s) for s in (statuses or [])]
        self.replies = list(replies or [])
        self.next_file_ids = list(file_ids or [])
        self.thread_id = thread_id
        self.calls = []
        self.files: Dict[str, bytes] = {}
        self.deleted_file_ids: List[str] = []
        self.deleted_thread_ids: List[str] = []
        self.threads: Dict[str, Dict] = {}
        self.messages: Dict[str, List[Message]] = {}
        self.runs: Dict[str, List[str]] = {}
        self.run_count = 0
        self.fail_content: set = set()
        self.last_error = RunError(code="server_error", message="Something went wrong")

    def add_file(self, file_id: str, data: bytes) -> None:
        self.files[file_id] = data

    def create_file_resource(self, file_path: str, file_bytes: io.BytesIO) -> str:
        self.calls.append(("create_file", file_path))
        file_id = self.next_file_ids.pop(0) if self.next_file_ids else f"file-{len(self.files) + 1}"
        self.files[file_id] = file_bytes.read()
        return file_id

    def get_file_content(self, file_id: str) -> bytes:
        self.calls.append(("get_file_content", file_id))
        if file_id in self.fail_content:
            raise IOError(f"content of {file_id} unavailable")
        if file_id not in self.files:
            raise KeyError(file_id)
        return self.files[file_id]

    def delete_file_resource(self, file_id: str) -> bool:
        self.calls.append(("delete_file", file_id))
        self.deleted_file_ids.append(file_id)
        return self.files.pop(file_id, None) is not None

    def create_thread_resource(self, content: str, attachments: Optional[List[Dict]] = None) -> str:
        self.calls.append(("create_thread", content))
        self.threads[self.thread_id] = {"content": content, "attachments": attachments or []}
        self.messages[self.thread_id] = []
        return self.thread_id

    def delete_thread_resource(self, thread_id: str) -> bool:
        self.calls.append(("delete_thread", thread_id))
        self.deleted_thread_ids.append(thread_id)
        return self.threads.pop(thread_id, None) is not None

    def create_message(self, thread_id: str, role: str, content: str) -> str:
        self.calls.append(("create_message", content))
        message_id = f"msg_{len(self.calls)}"
        self.messages.setdefault(thread_id, []).insert(0, Message(message_id=message_id, role=role))
        return message_id

    def list_messages(self, thread_id: str) -> List[Message]:
        self.calls.append(("list_messages", thread_id))
        return list(self.messages.get(thread_id, []))

    def create_run(self, thread_id: str, assistant_id: str) -> Run:
        self.calls.append(("create_run", assistant_id))
        self.run_count += 1
        run_id = f"run_{self.run_count}"
        self.runs[run_id] = self.statuses.pop(0) if self.statuses else ["completed"]
        return Run(run_id=run_id, thread_id=thread_id, status="queued")

    def get_run(self, thread_id: str, run_id: str) -> Run:
        self.calls.append(("get_run", run_id))
        statuses = self.runs[run_id]
        status = statuses.pop(0) if len(statuses) > 1 else statuses[0]
        if status == "completed" and self.replies:
            self.messages.setdefault(thread_id, []).insert(0, self.replies.pop(0))
        last_error = self.last_error if status == "failed" else None
        return Run(run_id=run_id, thread_id=thread_id, status=status, last_error=last_error)

    def call_names(self) -> List[str]:
        return [name for name, _ in self.calls]


class StubGateway(ResourceGateway):

    @classmethod
    def gateway(cls):
        return StubGateway()

    def create_file_resource(self, file_path, file_bytes): return "f"
    def get_file_content(self, file_id): return b""
    def delete_file_resource(self, file_id): return True
    def create_thread_resource(self, content, attachments=None): return "t"
    def delete_thread_resource(self, thread_id): return True
    def create_message(self, thread_id, role, content): return "m"
    def list_messages(self, thread_id): return []
    def create_run(self, thread_id, assistant_id): return Run(run_id="r", thread_id=thread_id, status="completed")
    def get_run(self, thread_id, run_id): return Run(run_id=run_id, thread_id=thread_id, status="completed")


class NotAGateway:
    pass
