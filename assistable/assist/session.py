from assistable.assist.providers.gateway import ResourceGateway
from assistable.assist.lifecycle import ResourceRegistry, CleanupReport
from assistable.assist.provisioner import AttachmentProvisioner, ProvisionedSession, ProvisioningError
from assistable.assist.driver import RunDriver, TurnResult, DEFAULT_POLL_INTERVAL
from assistable.assist.reconciler import OutputReconciler, ReconciledOutput, ensure_directory
from assistable.assist.content import Run
from typing import Callable, List, Optional, TextIO
import sys
import time
import logging

LOGGER = logging.getLogger(__name__)

EXIT_COMMAND = "exit"


class ChatSession:
    """
    Interactive loop over one thread: provision once, then one run per
    user line until 'exit', then clean up everything the session created.
    """

    def __init__(self, gateway: ResourceGateway, assistant_id: str, output_dir: str,
                 font_file_id: Optional[str] = None,
                 font_name: str = "NotoSansJP.ttf",
                 upload_dir: str = "/mnt/data/upload_files",
                 poll_interval: float = DEFAULT_POLL_INTERVAL,
                 sleep: Callable[[float], None] = time.sleep,
                 input_fn: Callable[[str], str] = input,
                 out: Optional[TextIO] = None):
        self.gateway = gateway
        self.output_dir = output_dir
        self.input_fn = input_fn
        self.out = out if out is not None else sys.stdout
        self.registry = ResourceRegistry()
        self.provisioner = AttachmentProvisioner(gateway, font_file_id=font_file_id,
                                                 font_name=font_name, upload_dir=upload_dir)
        self.driver = RunDriver(gateway, assistant_id, poll_interval=poll_interval,
                                sleep=sleep, on_status=self._print_status)
        self.reconciler = OutputReconciler(gateway, output_dir)
        self.provisioned: Optional[ProvisionedSession] = None

    def _print(self, *args) -> None:
        print(*args, file=self.out, flush=True)

    def _print_status(self, run: Run) -> None:
        self._print(f"\nRun status: {run.status}")

    def start(self, file_paths: List[str]) -> ProvisionedSession:
        try:
            ensure_directory(self.output_dir)
        except OSError as e:
            LOGGER.error(f"Cannot create output directory {self.output_dir}: {e}")
            raise ProvisioningError(f"Cannot create output directory '{self.output_dir}': {e}") from e
        self.provisioned = self.provisioner.provision(file_paths, self.registry)
        for uploaded in self.provisioned.files:
            self._print(f"File uploaded successfully: {uploaded.file_path} -> {uploaded.file_id}")
        self._print(f"Thread created successfully. Thread ID: {self.provisioned.thread_id}")
        return self.provisioned

    def read_turn(self) -> Optional[str]:
        try:
            return self.input_fn("\nUser: ")
        except (EOFError, KeyboardInterrupt):
            self._print()
            return None

    def handle_turn(self, prompt: str) -> Optional[TurnResult]:
        self._print("\nWaiting for response...")
        try:
            result = self.driver.run_turn(self.provisioned.thread_id, prompt)
        except Exception as e:
            LOGGER.error(f"Error running turn on thread {self.provisioned.thread_id}: {e}", exc_info=True)
            self._print(f"An error occurred: {e}")
            return None

        if result.completed:
            self.render(result)
        elif result.failed:
            last_error = result.run.last_error
            if last_error is not None:
                self._print(f"Error Code: {last_error.code}, Message: {last_error.message}")
        return result

    def render(self, result: TurnResult) -> Optional[ReconciledOutput]:
        message = result.newest_message
        if message is None:
            LOGGER.warning(f"Run {result.run.run_id} completed without messages")
            return None
        self._print("\nAssistant:")
        output = self.reconciler.reconcile(message, self.registry)
        for part in output.parts:
            self._print(part)
        return output

    def loop(self) -> None:
        self._print("Chat session started. Type 'exit' to end the session.")
        while True:
            user_input = self.read_turn()
            if user_input is None or user_input.strip().lower() == EXIT_COMMAND:
                self._print("Ending session...")
                break
            if not user_input.strip():
                continue
            self.handle_turn(user_input)

    def close(self) -> CleanupReport:
        report = self.registry.shutdown(self.gateway)
        if report.thread_deleted:
            self._print("Thread deleted successfully.")
        for file_id in report.deleted_file_ids:
            self._print(f"File {file_id} deleted successfully.")
        return report

    def run(self, file_paths: List[str]) -> CleanupReport:
        """
        Provisions, loops and always cleans up. A ProvisioningError still
        propagates after cleanup.
        """
        try:
            self.start(file_paths)
            self.loop()
        finally:
            report = self.close()
        return report
