from abc import ABC, abstractmethod
from assistable.assist.content import Message, Run
from typing import List, Dict, Optional
import io
import logging

LOGGER = logging.getLogger(__name__)


class ResourceGateway(ABC):
    """
    Capability surface over the remote assistant service. Implementations
    translate SDK objects into the types in assistable.assist.content.
    """

    @abstractmethod
    def create_file_resource(self, file_path: str, file_bytes: io.BytesIO) -> str:
        """
        Uploads a file for assistant use.
        Returns the file_id of the created file.
        """
        pass

    @abstractmethod
    def get_file_content(self, file_id: str) -> bytes:
        pass

    @abstractmethod
    def delete_file_resource(self, file_id: str) -> bool:
        """
        Deletes a file by its id.
        Don't throw an exception if it does not exist, just return False.
        """
        pass

    @abstractmethod
    def create_thread_resource(self, content: str, attachments: Optional[List[Dict]] = None) -> str:
        """
        Creates a new thread seeded with a single user message.
        Returns the thread_id of the created thread.
        """
        pass

    @abstractmethod
    def delete_thread_resource(self, thread_id: str) -> bool:
        """
        Deletes a thread by its id.
        Don't throw an exception if it does not exist, just return False.
        """
        pass

    @abstractmethod
    def create_message(self, thread_id: str, role: str, content: str) -> str:
        pass

    @abstractmethod
    def list_messages(self, thread_id: str) -> List[Message]:
        """ Messages of the thread, most recent first. """
        pass

    @abstractmethod
    def create_run(self, thread_id: str, assistant_id: str) -> Run:
        pass

    @abstractmethod
    def get_run(self, thread_id: str, run_id: str) -> Run:
        pass
