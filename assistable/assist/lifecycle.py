from assistable.assist.providers.gateway import ResourceGateway
from dataclasses import dataclass, field
from typing import List, Optional, Set
import logging

LOGGER = logging.getLogger(__name__)


@dataclass
class CleanupReport:
    thread_deleted: bool = False
    deleted_file_ids: List[str] = field(default_factory=list)
    missing_file_ids: List[str] = field(default_factory=list)
    failed_file_ids: List[str] = field(default_factory=list)


class ResourceRegistry:
    """
    Owns every remote id created during a session. Each file id is deleted at
    most once; a released id is considered consumed and is never read again.
    """

    def __init__(self):
        self.thread_id: Optional[str] = None
        self.input_file_ids: List[str] = []
        self.output_file_ids: List[str] = []
        self.released_file_ids: Set[str] = set()
        self.thread_released = False

    def track_thread(self, thread_id: str) -> None:
        if self.thread_id is not None and self.thread_id != thread_id:
            LOGGER.warning(f"Replacing tracked thread {self.thread_id} with {thread_id}")
        self.thread_id = thread_id
        self.thread_released = False

    def track_input(self, file_id: str) -> None:
        if file_id not in self.input_file_ids:
            self.input_file_ids.append(file_id)

    def track_output(self, file_id: str) -> None:
        if file_id not in self.output_file_ids:
            self.output_file_ids.append(file_id)

    def is_released(self, file_id: str) -> bool:
        return file_id in self.released_file_ids

    def pending_file_ids(self) -> List[str]:
        tracked = self.input_file_ids + [f for f in self.output_file_ids if f not in self.input_file_ids]
        return [file_id for file_id in tracked if file_id not in self.released_file_ids]

    def release_file(self, gateway: ResourceGateway, file_id: str) -> bool:
        """
        Deletes the remote file once. Returns True only when the gateway
        actually removed it; errors from the gateway propagate.
        """
        if file_id in self.released_file_ids:
            LOGGER.warning(f"File {file_id} was already released, not deleting again")
            return False
        self.released_file_ids.add(file_id)
        deleted = gateway.delete_file_resource(file_id)
        if deleted:
            LOGGER.info(f"Released file {file_id}")
        else:
            LOGGER.warning(f"File {file_id} was already gone when released")
        return deleted

    def release_thread(self, gateway: ResourceGateway) -> bool:
        if self.thread_id is None or self.thread_released:
            return False
        self.thread_released = True
        deleted = gateway.delete_thread_resource(self.thread_id)
        if not deleted:
            LOGGER.warning(f"Thread {self.thread_id} was already gone when released")
        return deleted

    def shutdown(self, gateway: ResourceGateway) -> CleanupReport:
        """
        Deletes the thread and every file not yet released. Failures are
        logged and never raised.
        """
        report = CleanupReport()
        try:
            report.thread_deleted = self.release_thread(gateway)
        except Exception as e:
            LOGGER.error(f"Error deleting thread {self.thread_id}: {e}", exc_info=True)

        for file_id in self.pending_file_ids():
            try:
                if self.release_file(gateway, file_id):
                    report.deleted_file_ids.append(file_id)
                else:
                    report.missing_file_ids.append(file_id)
            except Exception as e:
                LOGGER.error(f"Error deleting file {file_id}: {e}", exc_info=True)
                report.failed_file_ids.append(file_id)

        LOGGER.info(f"Cleanup finished: thread_deleted={report.thread_deleted} "
                    f"deleted={len(report.deleted_file_ids)} missing={len(report.missing_file_ids)} "
                    f"failed={len(report.failed_file_ids)}")
        return report
