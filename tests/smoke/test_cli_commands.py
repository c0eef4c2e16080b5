"""
Smoke Tests for CLI Commands.

These tests run the typer app against a temporary data directory and
verify that commands complete and leave the expected files behind.

Usage:
    pytest tests/smoke/test_cli_commands.py -v
    pytest tests/smoke/test_cli_commands.py -v -m smoke
"""

import pytest
from typer.testing import CliRunner

from carddown.cli import app, main
from carddown.config import get_settings
from carddown.store import CardStore, GlobalStateStore

# Mark all tests in this module as smoke tests
pytestmark = pytest.mark.smoke

runner = CliRunner()


@pytest.fixture
def notes(tmp_path):
    root = tmp_path / "notes"
    root.mkdir()
    (root / "geo.md").write_text(
        "Capital of France?: Paris #flashcard #geo\n"
        "Primary colours #flashcard #art\n"
        "red\nyellow\nblue\n"
        "---\n"
    )
    return root


@pytest.fixture
def scanned(settings, notes):
    result = runner.invoke(app, ["scan", str(notes), "--full"])
    assert result.exit_code == 0, result.output
    return settings


class TestCLIHelp:
    def test_main_help(self):
        result = runner.invoke(app, ["--help"])

        assert result.exit_code == 0
        assert "carddown" in result.output.lower()
        for command in ("scan", "revise", "audit", "delete", "stats"):
            assert command in result.output


class TestScan:
    def test_scan_populates_store(self, scanned):
        db = CardStore(scanned.cards_path).load()

        assert sorted(e.card.prompt for e in db.values()) == ["Capital of France?", "Primary colours"]
        assert scanned.scan_index_path.exists()
        assert not scanned.lock_path.exists()

    def test_full_rescan_marks_orphans(self, scanned, notes):
        (notes / "geo.md").write_text("Capital of France?: Paris #flashcard #geo\n")

        result = runner.invoke(app, ["scan", str(notes), "--full"])

        assert result.exit_code == 0, result.output
        assert "Orphaned: 1" in result.output
        orphans = [e for e in CardStore(scanned.cards_path).load().values() if e.orphan]
        assert [e.card.prompt for e in orphans] == ["Primary colours"]

    def test_scan_refuses_when_locked(self, settings, notes):
        settings.ensure_data_dir()
        settings.lock_path.touch()

        result = runner.invoke(app, ["scan", str(notes)])

        assert result.exit_code == 1
        assert "Another instance is running" in result.output
        assert settings.lock_path.exists()

    def test_force_overrides_stale_lock(self, settings, notes):
        settings.ensure_data_dir()
        settings.lock_path.touch()

        result = runner.invoke(app, ["scan", str(notes), "--force"])

        assert result.exit_code == 0, result.output
        assert not settings.lock_path.exists()

    def test_missing_path_fails(self, settings, tmp_path):
        result = runner.invoke(app, ["scan", str(tmp_path / "missing")])
        assert result.exit_code == 1


class TestRevise:
    def test_revise_saves_grades(self, scanned):
        result = runner.invoke(
            app,
            ["revise", "--tag", "geo", "--algorithm", "sm2"],
            input="\n5\n",
        )

        assert result.exit_code == 0, result.output
        assert "Session Complete" in result.output
        entry = next(
            e for e in CardStore(scanned.cards_path).load().values() if "geo" in e.card.tags
        )
        assert entry.revise_count == 1
        assert entry.state.interval == 1
        assert GlobalStateStore(scanned.state_path).load().total_cards_revised == 1
        assert not scanned.lock_path.exists()

    def test_quit_still_saves_global_state(self, scanned):
        result = runner.invoke(app, ["revise"], input="q\n")

        assert result.exit_code == 0, result.output
        state = GlobalStateStore(scanned.state_path).load()
        assert state.last_revise_session is not None
        assert state.total_cards_revised == 0

    def test_cram_does_not_save(self, scanned):
        before = scanned.cards_path.read_bytes()

        result = runner.invoke(app, ["revise", "--cram", "--tag", "geo"], input="\n5\n")

        assert result.exit_code == 0, result.output
        assert scanned.cards_path.read_bytes() == before
        assert not scanned.state_path.exists()

    def test_nothing_due(self, scanned):
        runner.invoke(app, ["revise", "--tag", "geo", "--algorithm", "sm2"], input="\n5\n")

        result = runner.invoke(app, ["revise", "--tag", "geo"])

        assert result.exit_code == 0
        assert "Nothing due" in result.output

    def test_unknown_algorithm(self, scanned):
        result = runner.invoke(app, ["revise", "--algorithm", "sm17"])
        assert result.exit_code == 2

    @pytest.mark.parametrize(
        "args",
        [
            ["--max-cards", "-1"],
            ["--max-cards", "0"],
            ["--max-duration", "0"],
            ["--cram", "--cram-hours", "-5"],
        ],
    )
    def test_out_of_range_options_rejected(self, scanned, args):
        before = scanned.cards_path.read_bytes()

        result = runner.invoke(app, ["revise", *args], input="\n5\n\n5\n")

        assert result.exit_code == 2
        assert scanned.cards_path.read_bytes() == before
        assert not scanned.state_path.exists()

    def test_max_cards_caps_session(self, scanned):
        result = runner.invoke(app, ["revise", "--max-cards", "1"], input="q\n")

        assert result.exit_code == 0, result.output
        assert "Session: 1 cards" in result.output


class TestAuditDeleteStats:
    def test_audit_empty(self, scanned):
        result = runner.invoke(app, ["audit"])

        assert result.exit_code == 0
        assert "No cards need attention" in result.output

    def test_delete_by_prefix(self, scanned):
        store = CardStore(scanned.cards_path)
        card_id = next(iter(store.load()))

        result = runner.invoke(app, ["delete", card_id[:16]])

        assert result.exit_code == 0, result.output
        assert card_id not in store.load()

    def test_delete_unknown_id(self, scanned):
        before = scanned.cards_path.read_bytes()

        result = runner.invoke(app, ["delete", "f" * 64])

        assert result.exit_code == 1
        assert "Card with id" in result.output
        assert scanned.cards_path.read_bytes() == before

    def test_stats(self, scanned):
        result = runner.invoke(app, ["stats"])

        assert result.exit_code == 0
        assert "Total cards" in result.output

    def test_delete_empty_id_rejected(self, scanned):
        before = scanned.cards_path.read_bytes()

        for card_id in ("", "   "):
            result = runner.invoke(app, ["delete", card_id])

            assert result.exit_code == 1
            assert scanned.cards_path.read_bytes() == before


class TestConfiguration:
    def test_invalid_log_level_exits_cleanly(self, settings, monkeypatch):
        monkeypatch.setenv("CARDDOWN_LOG_LEVEL", "bogus")
        get_settings.cache_clear()

        result = runner.invoke(app, ["stats"])

        assert result.exit_code == 2
        assert "Invalid configuration" in result.output

    def test_main_survives_invalid_log_level(self, settings, monkeypatch):
        monkeypatch.setenv("CARDDOWN_LOG_LEVEL", "bogus")
        monkeypatch.setattr("sys.argv", ["carddown", "stats"])
        get_settings.cache_clear()

        with pytest.raises(SystemExit) as exc_info:
            main()

        assert exc_info.value.code == 2
