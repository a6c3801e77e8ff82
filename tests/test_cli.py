from typer.testing import CliRunner

from ant_recorder.cli import app
from ant_recorder.codec import encode
from ant_recorder.durable_log import read_events
from ant_recorder.models import EventType
from ant_recorder.paths import get_dataset_path

from conftest import at

runner = CliRunner()


def test_record_session(tmp_path):
    result = runner.invoke(
        app,
        ["record", "colony 1", "--data-dir", str(tmp_path)],
        input="i\ni\no\nu\nq\n",
    )
    assert result.exit_code == 0, result.output
    events = read_events(tmp_path / "Ant events colony 1.csv")
    assert [event.type for event in events] == [EventType.IN, EventType.IN]
    assert "in=2 out=1" in result.stdout
    assert "deleted Out" in result.stdout
    assert "saved: in=2 out=0" in result.stdout


def test_undo_with_nothing_recorded(tmp_path):
    result = runner.invoke(app, ["record", "empty", "--data-dir", str(tmp_path)], input="u\n")
    assert result.exit_code == 0, result.output
    assert "nothing to delete" in result.stdout


def test_rejects_path_in_dataset_name(tmp_path):
    result = runner.invoke(app, ["record", "../escape", "--data-dir", str(tmp_path)], input="q\n")
    assert result.exit_code == 2


def test_summary(tmp_path):
    path = get_dataset_path("colony", tmp_path)
    path.write_text(
        encode(at(0)) + encode(at(30)) + encode(at(90, EventType.OUT)), encoding="utf-8"
    )
    result = runner.invoke(app, ["summary", "colony", "--data-dir", str(tmp_path)])
    assert result.exit_code == 0, result.output
    assert "In:          2" in result.stdout
    assert "Out:         1" in result.stdout
    assert "Out/In:      0.50" in result.stdout
    assert "Rates per 00:01:00 block:" in result.stdout


def test_summary_reports_malformed_line(tmp_path):
    path = get_dataset_path("broken", tmp_path)
    path.write_text(encode(at(0)) + "oops\n", encoding="utf-8")
    result = runner.invoke(app, ["summary", "broken", "--data-dir", str(tmp_path)])
    assert result.exit_code == 1
    assert "line 2" in result.output


def test_datasets(tmp_path):
    get_dataset_path("b", tmp_path).touch()
    get_dataset_path("a", tmp_path).touch()
    result = runner.invoke(app, ["datasets", "--data-dir", str(tmp_path)])
    assert result.exit_code == 0, result.output
    assert result.stdout.split() == ["a", "b"]
