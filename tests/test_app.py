"""
Tests for the command line interface.
"""

import pytest

from que import __version__
from que.app import main
from que.config import reset_settings
from que.job import Job
from que.persistence import JsonFileAdapter, MemoryAdapter, get_adapter


class TestCli:
    """Test que CLI commands against the in-memory adapter."""

    @pytest.fixture
    def stored(self, memory_persistence):
        """Facade holding one job per status."""
        for status in ["queued", "started", "completed", "failed"]:
            memory_persistence.insert(Job(worker="Emailer", arguments=[status], status=status))
        memory_persistence.insert(Job(worker="Resizer", arguments=[], status="queued"))
        return memory_persistence

    def test_version(self, capsys):
        main(["--version"])
        assert capsys.readouterr().out.strip() == __version__

    def test_no_command_prints_help(self, capsys):
        main([])
        assert "usage: que" in capsys.readouterr().out

    def test_init(self, memory_persistence, capsys):
        main(["init"])
        assert "Storage ready." in capsys.readouterr().out

    def test_init_failure_exits(self, monkeypatch, memory_persistence):
        monkeypatch.setattr(MemoryAdapter, "initialize", lambda self: False)

        with pytest.raises(SystemExit):
            main(["init"])

    def test_list_all(self, stored, capsys):
        main(["list"])
        out = capsys.readouterr().out

        assert "Found 5 jobs" in out
        assert "Worker: Resizer" in out

    def test_list_incomplete_by_worker(self, stored, capsys):
        main(["list", "--status", "incomplete", "--worker", "Emailer"])
        out = capsys.readouterr().out

        assert "Found 2 incomplete jobs" in out
        assert "Status: failed" not in out

    def test_list_empty(self, memory_persistence, capsys):
        main(["list", "--status", "failed"])
        assert "No jobs found." in capsys.readouterr().out

    def test_show(self, stored, capsys):
        main(["show", "3"])
        out = capsys.readouterr().out

        assert "ID: 3" in out
        assert "Status: completed" in out

    def test_show_unknown_exits(self, stored):
        with pytest.raises(SystemExit, match="Job not found: 99"):
            main(["show", "99"])

    def test_destroy(self, stored, capsys):
        main(["destroy", "1"])

        assert "Destroyed job 1" in capsys.readouterr().out
        assert stored.find(1) is None

    def test_cleanup(self, stored, capsys):
        main(["cleanup", "--days", "0", "--include-failed"])

        assert "Removed 2 finished jobs, 3 remaining." in capsys.readouterr().out
        assert stored.completed() == []
        assert stored.failed() == []

    def test_adapter_option_configures_resolver(self, monkeypatch, tmp_path, capsys):
        monkeypatch.setenv("QUE_JSON_STORE", str(tmp_path / "cli.json"))
        reset_settings()

        main(["--adapter", "json", "init"])

        assert isinstance(get_adapter(), JsonFileAdapter)
        assert (tmp_path / "cli.json").exists()

    def test_bad_adapter_exits(self):
        with pytest.raises(SystemExit):
            main(["--adapter", "nope", "list"])

    def test_migrate(self, monkeypatch, tmp_path, capsys):
        monkeypatch.setenv("QUE_JSON_STORE", str(tmp_path / "source.json"))
        monkeypatch.setenv("QUE_DATABASE_URL", f"sqlite:///{tmp_path / 'target.db'}")
        reset_settings()
        source = JsonFileAdapter(tmp_path / "source.json")
        source.insert(Job(worker="Emailer"))
        source.insert(Job(worker="Emailer", status="completed"))

        main(["migrate", "--from", "json", "--to", "sql"])

        assert "Copied 2 jobs" in capsys.readouterr().out
        assert (tmp_path / "target.db").exists()

    def test_migrate_dry_run(self, monkeypatch, tmp_path, capsys):
        monkeypatch.setenv("QUE_JSON_STORE", str(tmp_path / "source.json"))
        reset_settings()
        JsonFileAdapter(tmp_path / "source.json").insert(Job(worker="Emailer"))

        main(["migrate", "--from", "json", "--to", "memory", "--dry-run"])

        assert "[DRY RUN] Would copy 1 jobs" in capsys.readouterr().out
