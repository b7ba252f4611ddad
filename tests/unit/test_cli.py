"""
Unit tests for the command-line interface
"""

import json
import logging
from unittest.mock import patch

import pytest

pytestmark = pytest.mark.unit
from taskrank.cli import load_tasks, main
from taskrank.errors import ConfigError
from taskrank.logging_config import setup_logging


@pytest.fixture
def tasks_file(tmp_path):
    path = tmp_path / "tasks.json"
    path.write_text(json.dumps({"tasks": [
        {"text": "Fix payment bug", "status": "open", "priority": 1, "dueDate": "2025-03-10",
         "sourcePath": "Work/Inbox.md", "lineNumber": 3},
        {"text": "Fix typo", "status": "open"},
        {"text": "Buy milk", "status": "open"},
    ]}), encoding="utf-8")
    return path


def _run_cli(*args):
    with patch("taskrank.cli.setup_logging"):
        return main(list(args))


class TestLoadTasks:
    """Test task export loading"""

    def test_list_and_wrapped(self, tmp_path, tasks_file):
        assert len(load_tasks(str(tasks_file))) == 3
        plain = tmp_path / "plain.json"
        plain.write_text('[{"text": "a"}, "junk"]', encoding="utf-8")
        assert load_tasks(str(plain)) == [{"text": "a"}]

    def test_errors(self, tmp_path):
        with pytest.raises(ConfigError):
            load_tasks(str(tmp_path / "missing.json"))
        broken = tmp_path / "broken.json"
        broken.write_text("{", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_tasks(str(broken))
        scalar = tmp_path / "scalar.json"
        scalar.write_text("42", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_tasks(str(scalar))


class TestMain:
    """Test main() output and exit codes"""

    def test_json_output(self, tasks_file, capsys):
        code = _run_cli("fix bug", "--tasks", str(tasks_file), "--today", "2025-03-12", "--json", "--no-expand")
        assert code == 0
        output = json.loads(capsys.readouterr().out)
        assert output["keywords"] == ["fix", "bug"]
        assert [t["text"] for t in output["tasks"]] == ["Fix payment bug", "Fix typo"]
        assert output["tasks"][0]["due_date"] == "2025-03-10"
        assert output["diagnostics"]["eliminated_by"] is None

    def test_table_output_with_limit(self, tasks_file, capsys):
        code = _run_cli("fix", "--tasks", str(tasks_file), "--today", "2025-03-12", "--limit", "1", "--no-expand")
        assert code == 0
        lines = capsys.readouterr().out.strip().splitlines()
        assert len(lines) == 2
        assert "Fix payment bug" in lines[0]
        assert "Work/Inbox.md:3" in lines[0]
        assert lines[1].startswith("--")

    def test_empty_result_explains(self, tasks_file, capsys):
        code = _run_cli("zebra", "--tasks", str(tasks_file), "--no-expand")
        assert code == 0
        assert "None of 3 tasks matched" in capsys.readouterr().out

    def test_sort_override(self, tasks_file, capsys):
        code = _run_cli("s:open", "--tasks", str(tasks_file), "--today", "2025-03-12",
                        "--sort", "alphabetical", "--json", "--no-expand")
        assert code == 0
        texts = [t["text"] for t in json.loads(capsys.readouterr().out)["tasks"]]
        assert texts[0] == "Fix payment bug"

    def test_missing_file(self, tmp_path, capsys):
        assert _run_cli("fix", "--tasks", str(tmp_path / "nope.json")) == 2
        assert "Cannot read" in capsys.readouterr().err

    def test_bad_today(self, tasks_file, capsys):
        assert _run_cli("fix", "--tasks", str(tasks_file), "--today", "someday") == 2
        assert "--today" in capsys.readouterr().err


class TestSetupLogging:
    """Test logging configuration"""

    @pytest.fixture(autouse=True)
    def restore_root_logger(self):
        root = logging.getLogger()
        handlers, level = list(root.handlers), root.level
        yield
        for handler in root.handlers:
            handler.close()
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_console_only(self):
        assert setup_logging() is None
        assert len(logging.getLogger().handlers) == 1

    def test_session_log_file(self, tmp_path):
        session_log = setup_logging(log_file=str(tmp_path / "logs" / "taskrank.log"))
        logging.getLogger("taskrank.test").debug("hello from the test")
        for handler in logging.getLogger().handlers:
            handler.flush()
        assert session_log.parent == tmp_path / "logs"
        assert session_log.name.startswith("taskrank_")
        assert "hello from the test" in session_log.read_text(encoding="utf-8")
