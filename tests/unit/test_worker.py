"""
Tests for the worker core: job files, handlers and terminal messages.
"""

import io
import json

import pytest

from reqingest.config import IngestConfig
from reqingest.errors import InputError, UnknownJobTypeError
from reqingest.schema.jobs import (
    CompletedMessage,
    FailedMessage,
    Job,
    JobType,
    ProgressMessage,
    parse_message,
)
from reqingest.worker.channel import MessageChannel
from reqingest.worker.handlers import handle_file, handle_large_file
from reqingest.worker.main import load_job_file, run_job


def _job(job_type=JobType.LARGE_FILE_PROCESSING, **data):
    return Job(id="job-test", type=job_type, data=data)


def _terminal(messages):
    return [m for m in messages if not isinstance(m, ProgressMessage)]


class TestRunJob:
    """Tests for run_job."""

    def test_completed(self):
        """Test a successful handler yields progress then one completed message."""

        def handler(data, progress, config):
            progress(50)
            return {"echo": data["value"]}

        messages = []
        code = run_job(
            _job(value=7), messages.append, handlers={"large_file_processing": handler}
        )

        assert code == 0
        assert messages[0] == ProgressMessage(progress=50)
        assert messages[-1] == CompletedMessage(result={"echo": 7})
        assert len(_terminal(messages)) == 1

    def test_failed(self):
        """Test a raising handler yields exactly one failed message."""

        def handler(data, progress, config):
            progress(10)
            raise ValueError("boom")

        messages = []
        code = run_job(_job(), messages.append, handlers={"large_file_processing": handler})

        assert code == 1
        assert _terminal(messages) == [FailedMessage(error="boom")]

    def test_failed_without_message(self):
        """Test an exception without text still produces a non-empty error."""

        def handler(data, progress, config):
            raise RuntimeError()

        messages = []
        run_job(_job(), messages.append, handlers={"large_file_processing": handler})

        assert messages[-1].error == "RuntimeError in job worker"

    def test_no_handler(self):
        """Test a job type without a handler fails."""
        messages = []
        code = run_job(_job(), messages.append, handlers={})

        assert code == 1
        assert "No handler found for job type: large_file_processing" in messages[-1].error

    def test_unserialisable_result(self):
        """Test results that cannot be sent become a failure, not a broken channel."""
        messages = []
        code = run_job(
            _job(), messages.append, handlers={"large_file_processing": lambda d, p, c: object()}
        )

        assert code == 1
        assert isinstance(messages[-1], FailedMessage)

    def test_progress_clamped(self):
        """Test out-of-range progress values are clamped."""

        def handler(data, progress, config):
            progress(-5)
            progress(250)
            return None

        messages = []
        run_job(_job(), messages.append, handlers={"large_file_processing": handler})

        assert [m.progress for m in messages[:2]] == [0, 100]


class TestLoadJobFile:
    """Tests for load_job_file."""

    def test_valid(self, tmp_path):
        path = tmp_path / "job.json"
        path.write_text(_job(text="abc").to_json(), encoding="utf-8")

        job = load_job_file(path)
        assert job.id == "job-test"
        assert job.data == {"text": "abc"}

    def test_missing_file(self, tmp_path):
        with pytest.raises(InputError, match="not found"):
            load_job_file(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "job.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(InputError):
            load_job_file(path)

    def test_missing_fields(self, tmp_path):
        path = tmp_path / "job.json"
        path.write_text(json.dumps({"id": "x", "data": {}}), encoding="utf-8")
        with pytest.raises(InputError, match="id, type and data"):
            load_job_file(path)

    def test_unknown_type(self, tmp_path):
        path = tmp_path / "job.json"
        path.write_text(json.dumps({"id": "x", "type": "batch_operation", "data": {}}), encoding="utf-8")
        with pytest.raises(UnknownJobTypeError):
            load_job_file(path)


class TestHandlers:
    """Tests for the built-in handlers, with litellm.completion replaced."""

    def test_large_file(self, fake_llm):
        """Test the text handler runs the pipeline and returns JSON-ready data."""
        progress = []
        result = handle_large_file(
            {
                "text": "The billing system shall export every invoice as PDF. " * 5,
                "project_name": "Billing",
                "file_name": "notes.txt",
            },
            progress.append,
            IngestConfig(),
        )

        assert len(fake_llm) == 1
        assert [i["title"] for i in result["items"]] == ["Invoice export", "Audit log"]
        assert result["items"][1]["category"] == "security"
        assert progress[0] == 0
        assert progress[-1] == 100
        json.dumps(result)

    def test_file(self, fake_llm, requirements_file):
        """Test the file handler reads the document and names it after the file."""
        result = handle_file(
            {"file_path": str(requirements_file), "project_name": "Billing"},
            lambda pct: None,
            IngestConfig(),
        )

        assert len(result["items"]) == 2
        prompt = fake_llm[0]["messages"][-1]["content"]
        assert "notes.txt" in prompt
        assert "audit log" in prompt

    def test_file_missing(self, tmp_path):
        with pytest.raises(InputError, match="File not found"):
            handle_file(
                {"file_path": str(tmp_path / "gone.pdf"), "project_name": "Billing"},
                lambda pct: None,
                IngestConfig(),
            )

    def test_invalid_payload(self):
        """Test payload validation names the missing fields."""
        with pytest.raises(InputError, match="project_name"):
            handle_large_file({"text": "abc", "file_name": "x.txt"}, lambda pct: None, IngestConfig())

    def test_short_text(self, fake_llm):
        with pytest.raises(InputError, match="too short"):
            handle_large_file(
                {"text": "hi", "project_name": "P", "file_name": "x.txt"},
                lambda pct: None,
                IngestConfig(),
            )
        assert fake_llm == []


class TestMessageChannel:
    """Tests for MessageChannel."""

    def test_one_message_per_line(self):
        stream = io.StringIO()
        channel = MessageChannel(stream)
        channel.progress(40)
        channel.completed({"items": []})
        channel.failed("")

        lines = stream.getvalue().splitlines()
        assert [parse_message(line) for line in lines] == [
            ProgressMessage(progress=40),
            CompletedMessage(result={"items": []}),
            FailedMessage(error="Unknown error in job worker"),
        ]
