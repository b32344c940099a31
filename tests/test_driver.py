import logging
LOGGER = logging.getLogger(__name__)

import pytest
from unittest.mock import MagicMock
from assistable.assist.driver import RunDriver
from assistable.assist.content import Message, TextBlock, Run
from tests.common import FakeGateway


def _reply(text="done"):
    return Message(message_id="msg_reply", role="assistant", content=[TextBlock(value=text)])


class TestRunDriver:

    def setup_method(self):
        self.sleeps = []

    def _driver(self, gateway, **kwargs):
        return RunDriver(gateway, "asst_1", poll_interval=5, sleep=self.sleeps.append, **kwargs)

    def test_polls_until_completed(self):
        gateway = FakeGateway(statuses=[["queued", "in_progress", "in_progress", "completed"]], replies=[_reply()])
        gateway.create_thread_resource("seed")
        result = self._driver(gateway).run_turn("t1", "summarize sheet 1")

        assert result.completed
        assert result.polls == 4
        assert self.sleeps == [5, 5, 5]
        assert gateway.call_names().count("get_run") == 4
        assert gateway.call_names().count("list_messages") == 4
        assert result.newest_message.message_id == "msg_reply"

    def test_failed_run_stops_polling(self):
        gateway = FakeGateway(statuses=[["queued", "failed"]])
        gateway.create_thread_resource("seed")
        result = self._driver(gateway).run_turn("t1", "hello")

        assert result.failed
        assert not result.completed
        assert result.polls == 2
        assert self.sleeps == [5]
        assert result.run.last_error.code == "server_error"

    @pytest.mark.parametrize("status", ["expired", "cancelled", "requires_action", "incomplete"])
    def test_other_status_is_terminal(self, status):
        gateway = FakeGateway(statuses=[["in_progress", status]])
        gateway.create_thread_resource("seed")
        result = self._driver(gateway).run_turn("t1", "hello")

        assert result.run.status == status
        assert result.polls == 2
        assert self.sleeps == [5]

    def test_message_precedes_run_precedes_poll(self):
        gateway = FakeGateway(statuses=[["completed"]])
        gateway.create_thread_resource("seed")
        self._driver(gateway).run_turn("t1", "hello")

        names = gateway.call_names()
        assert names.index("create_message") < names.index("create_run") < names.index("get_run")
        assert ("create_message", "hello") in gateway.calls

    def test_no_run_created_before_prior_run_is_terminal(self):
        terminal = {"completed", "failed", "expired"}
        events = []
        gateway = FakeGateway(statuses=[["queued", "in_progress", "completed"], ["queued", "failed"], ["in_progress", "expired"]])
        gateway.create_thread_resource("seed")
        original_get_run = gateway.get_run
        original_create_run = gateway.create_run

        def tracking_get_run(thread_id, run_id):
            run = original_get_run(thread_id, run_id)
            events.append(("poll", run.status))
            return run

        def tracking_create_run(thread_id, assistant_id):
            events.append(("create_run", None))
            return original_create_run(thread_id, assistant_id)

        gateway.get_run = tracking_get_run
        gateway.create_run = tracking_create_run
        driver = self._driver(gateway)
        for prompt in ["one", "two", "three"]:
            driver.run_turn("t1", prompt)

        previous = None
        for event, status in events:
            if event == "create_run":
                assert previous is None or previous in terminal
            else:
                previous = status
        assert [e for e, _ in events].count("create_run") == 3

    def test_second_start_while_active_is_rejected(self):
        gateway = FakeGateway(statuses=[["queued", "completed"]])
        gateway.create_thread_resource("seed")
        driver = self._driver(gateway)
        driver.start_run("t1", "first")

        with pytest.raises(RuntimeError):
            driver.start_run("t1", "second")
        assert gateway.call_names().count("create_run") == 1

    def test_active_run_cleared_after_error(self):
        gateway = MagicMock()
        gateway.create_run.return_value = Run(run_id="run_1", thread_id="t1", status="queued")
        gateway.get_run.side_effect = RuntimeError("connection reset")
        driver = self._driver(gateway)

        with pytest.raises(RuntimeError):
            driver.run_turn("t1", "hello")
        assert driver.active_run is None

    def test_status_callback_sees_every_poll(self):
        gateway = FakeGateway(statuses=[["queued", "in_progress", "completed"]])
        gateway.create_thread_resource("seed")
        seen = []
        self._driver(gateway, on_status=lambda run: seen.append(run.status)).run_turn("t1", "hello")
        assert seen == ["queued", "in_progress", "completed"]
