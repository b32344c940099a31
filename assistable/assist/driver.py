from assistable.assist.providers.gateway import ResourceGateway
from assistable.assist.content import Message, Run, RUN_COMPLETED, RUN_FAILED
from dataclasses import dataclass, field
from typing import Callable, List, Optional
import time
import logging

LOGGER = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 5.0


@dataclass
class TurnResult:
    run: Run
    messages: List[Message] = field(default_factory=list)
    polls: int = 0

    @property
    def completed(self) -> bool:
        return self.run.status == RUN_COMPLETED

    @property
    def failed(self) -> bool:
        return self.run.status == RUN_FAILED

    @property
    def newest_message(self) -> Optional[Message]:
        return self.messages[0] if self.messages else None


class RunDriver:
    """
    Submits one user turn and polls its run until the status is terminal.
    queued/in_progress wait a fixed interval and poll again; anything else
    ends the loop.
    """

    def __init__(self, gateway: ResourceGateway, assistant_id: str,
                 poll_interval: float = DEFAULT_POLL_INTERVAL,
                 sleep: Callable[[float], None] = time.sleep,
                 on_status: Optional[Callable[[Run], None]] = None):
        self.gateway = gateway
        self.assistant_id = assistant_id
        self.poll_interval = poll_interval
        self.sleep = sleep
        self.on_status = on_status
        self.active_run: Optional[Run] = None

    def start_run(self, thread_id: str, prompt: str) -> Run:
        if self.active_run is not None:
            raise RuntimeError(f"Run {self.active_run.run_id} on thread {self.active_run.thread_id} is still active")
        message_id = self.gateway.create_message(thread_id, "user", prompt)
        LOGGER.debug(f"Created user message {message_id} on thread {thread_id}")
        run = self.gateway.create_run(thread_id, self.assistant_id)
        self.active_run = run
        LOGGER.info(f"Run created: {run.run_id} status={run.status}")
        return run

    def poll(self, run: Run) -> TurnResult:
        polls = 0
        while True:
            run = self.gateway.get_run(run.thread_id, run.run_id)
            messages = self.gateway.list_messages(run.thread_id)
            polls += 1
            LOGGER.debug(f"Run {run.run_id} poll {polls}: status={run.status}")
            for message in messages:
                LOGGER.debug(f"[{message.role}] {message.content}")
            if self.on_status is not None:
                self.on_status(run)

            match run.status:
                case "queued" | "in_progress":
                    self.sleep(self.poll_interval)
                case "completed":
                    LOGGER.info(f"Run {run.run_id} completed after {polls} polls")
                    return TurnResult(run=run, messages=messages, polls=polls)
                case "failed":
                    LOGGER.error(f"Run {run.run_id} failed: {run.last_error}")
                    return TurnResult(run=run, messages=messages, polls=polls)
                case _:
                    LOGGER.warning(f"Run {run.run_id} ended with unhandled status: {run.status}")
                    return TurnResult(run=run, messages=messages, polls=polls)

    def run_turn(self, thread_id: str, prompt: str) -> TurnResult:
        run = self.start_run(thread_id, prompt)
        try:
            return self.poll(run)
        finally:
            self.active_run = None
