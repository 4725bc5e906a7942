import json
import pytest
from typer.testing import CliRunner

from trainsched.cli.app import app
from trainsched.export import ExportUnavailableError, SpreadsheetExporter

runner = CliRunner()

MON_WED = ["--start", "2024-01-01", "-d", "2", "-T", "5", "-w", "mon", "-w", "wed"]


@pytest.fixture
def course_file(tmp_path):
    path = tmp_path / "course.toml"
    path.write_text(
        '[course]\nname = "Welding"\ntrainee = "Ann"\n\n'
        '[schedule]\nstart_date = "2024-01-01"\nhours_per_day = 2\ntotal_hours = 5\n'
        'weekdays = [1, 3]\nexcluded_dates = ["2024-01-03"]\n'
    )
    return path


class TestGenerateCommand:
    def test_generate_from_options(self):
        result = runner.invoke(app, ["generate", *MON_WED])
        assert result.exit_code == 0, result.output
        assert "2024-01-01" in result.output
        assert "2024-01-03" in result.output
        assert "2024-01-08" in result.output

    def test_generate_from_course_file(self, course_file):
        result = runner.invoke(app, ["generate", str(course_file)])
        assert result.exit_code == 0, result.output
        assert "Welding" in result.output
        assert "2024-01-10" in result.output
        assert "2024-01-03" not in result.output

    def test_options_override_course_file(self, course_file):
        result = runner.invoke(app, ["generate", str(course_file), "-x", "2024-01-08"])
        assert result.exit_code == 0, result.output
        assert "2024-01-08" not in result.output
        assert "2024-01-15" in result.output

    def test_missing_start_date(self):
        result = runner.invoke(app, ["generate", "-w", "mon"])
        assert result.exit_code == 1
        assert "Start date is not set" in result.output

    def test_invalid_value(self):
        result = runner.invoke(app, ["generate", "--start", "someday"])
        assert result.exit_code == 1
        assert "Invalid date" in result.output

    def test_zero_hours_per_day(self):
        result = runner.invoke(app, ["generate", "--start", "2024-01-01", "-d", "0"])
        assert result.exit_code == 1
        assert "Hours per day must be positive" in result.output

    def test_bad_config_weekdays(self, isolated_config_dir):
        isolated_config_dir.mkdir(parents=True)
        (isolated_config_dir / "config.toml").write_text('[defaults]\nweekdays = ["mon", "wed"]\ntotal_hours = 5\n')
        result = runner.invoke(app, ["generate", "--start", "2024-01-01"])
        assert result.exit_code == 0, result.output
        assert "2024-01-08" in result.output

    def test_export_xlsx(self, tmp_path):
        pytest.importorskip("openpyxl")
        out = tmp_path / "exports"
        result = runner.invoke(app, ["generate", *MON_WED, "--course", "Welding", "--xlsx", "-o", str(out)])
        assert result.exit_code == 0, result.output
        assert (out / "Welding - Trainee - Schedule.xlsx").exists()

    def test_export_unavailable_is_a_notice(self, tmp_path, monkeypatch):
        def unavailable(self, *args, **kwargs):
            raise ExportUnavailableError("openpyxl not found")

        monkeypatch.setattr(SpreadsheetExporter, "export", unavailable)
        result = runner.invoke(app, ["generate", *MON_WED, "--xlsx", "-o", str(tmp_path)])
        assert result.exit_code == 0
        assert "openpyxl not found" in result.output


class TestInputsCommand:
    def test_toml(self, course_file):
        result = runner.invoke(app, ["inputs", str(course_file)])
        assert result.exit_code == 0, result.output
        assert 'name = "Welding"' in result.output
        assert '"mon"' in result.output

    def test_json(self):
        result = runner.invoke(app, ["inputs", *MON_WED, "--trainee", "Ann", "--json"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["course"]["trainee"] == "Ann"
        assert data["schedule"]["start_date"] == "2024-01-01"
        assert data["schedule"]["weekdays"] == ["mon", "wed"]


class TestEditCommand:
    def test_edit_session(self):
        result = runner.invoke(app, ["edit", *MON_WED], input="set 1 hours 1\nquit\n")
        assert result.exit_code == 0, result.output
        assert "Error" not in result.output

    def test_edit_errors_do_not_exit(self):
        result = runner.invoke(app, ["edit", *MON_WED], input="remove 9\nset 1 hours lots\nbogus\nadd 1\nquit\n")
        assert result.exit_code == 0, result.output
        assert "No session #9" in result.output
        assert "Invalid number of hours" in result.output
        assert "Unknown command" in result.output

    def test_end_of_input_leaves_loop(self):
        result = runner.invoke(app, ["edit", *MON_WED], input="show\n")
        assert result.exit_code == 0, result.output


class TestEditCommandHandler:
    """Drive the interactive command handler directly"""

    @pytest.fixture
    def manager(self, mon_wed_input):
        from trainsched.schedule import ScheduleManager
        return ScheduleManager(schedule_input=mon_wed_input)

    def test_commands(self, manager):
        from trainsched.cli.app import handle_edit_command

        assert handle_edit_command({}, manager, "add 2")
        assert [s.hours for s in manager.sessions] == [2, 0, 2, 1]

        assert handle_edit_command({}, manager, "set 2 hours 0.5")
        assert manager.sessions[1].hours == 0.5

        assert handle_edit_command({}, manager, "set 2 start_time '1:00 PM'")
        assert manager.sessions[1].start_time.hour == 13

        assert handle_edit_command({}, manager, "remove 2")
        assert len(manager.sessions) == 3

        assert handle_edit_command({}, manager, "exclude 2024-01-03")
        assert [s.date.isoformat() for s in manager.sessions] == ["2024-01-01", "2024-01-08", "2024-01-10"]

        assert handle_edit_command({}, manager, "input total_hours 4")
        assert len(manager.sessions) == 2

        assert handle_edit_command({}, manager, "")
        assert not handle_edit_command({}, manager, "quit")


class TestConfigCommands:
    def test_show(self):
        result = runner.invoke(app, ["config", "show"])
        assert result.exit_code == 0, result.output
        assert "09:00" in result.output

    def test_set_and_show(self):
        result = runner.invoke(app, ["config", "set", "hours_per_day", "3"])
        assert result.exit_code == 0, result.output

        result = runner.invoke(app, ["config", "set", "weekdays", "mon,fri"])
        assert result.exit_code == 0, result.output

        result = runner.invoke(app, ["config", "show"])
        assert "Mon, Fri" in result.output

        # Defaults now feed generation
        result = runner.invoke(app, ["inputs", "--json"])
        data = json.loads(result.output)
        assert data["schedule"]["hours_per_day"] == 3.0
        assert data["schedule"]["weekdays"] == ["mon", "fri"]

    def test_set_invalid(self):
        result = runner.invoke(app, ["config", "set", "hours_per_day", "0"])
        assert result.exit_code == 1

        result = runner.invoke(app, ["config", "set", "colour", "blue"])
        assert result.exit_code == 1

    def test_path(self, isolated_config_dir):
        result = runner.invoke(app, ["config", "path"])
        assert result.exit_code == 0
        assert result.output.strip() == str(isolated_config_dir / "config.toml")
