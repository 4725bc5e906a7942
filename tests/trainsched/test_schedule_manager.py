import pytest
from datetime import date, time

from trainsched.models import ScheduleInput, CourseInfo
from trainsched.schedule import ScheduleManager, ScheduleInputError, SessionNotFoundError

COURSE_FILE = """
[course]
name = "Forklift Safety"
trainee = "Jane Doe"

[schedule]
start_date = "2024-01-01"
start_time = "8:30 AM"
hours_per_day = 2
total_hours = 5
weekdays = ["mon", "wed"]
excluded_dates = ["2024-01-03"]
"""


@pytest.fixture
def manager(mon_wed_input):
    return ScheduleManager(schedule_input=mon_wed_input, course=CourseInfo(name="Safety", trainee="Sam"))


@pytest.fixture
def course_file(tmp_path):
    path = tmp_path / "course.toml"
    path.write_text(COURSE_FILE)
    return path


class TestScheduleManager:
    """Tests for the stateful schedule manager"""

    def test_generates_on_init(self, manager):
        """Test that complete inputs are generated straight away"""
        assert len(manager.sessions) == 3

    def test_incomplete_inputs(self):
        """Test that a manager without a start date starts empty"""
        manager = ScheduleManager()
        assert manager.sessions == []
        assert not manager.schedule_input.can_generate

    def test_generation_input_change_regenerates(self, manager):
        """Test that changing total hours replaces the session list"""
        manager.edit_session(1, "hours", "0")
        manager.update_input(total_hours=8)
        assert [s.hours for s in manager.sessions] == [2, 2, 2, 2]
        assert manager.sessions[-1].remaining == 0

    def test_start_time_change_keeps_edits(self, manager):
        """Test that the default start time alone does not regenerate"""
        manager.edit_session(1, "hours", "0.5")
        manager.update_input(start_time=time(10, 0))
        assert manager.sessions[0].hours == 0.5
        assert manager.schedule_input.start_time == time(10, 0)

        # The next regeneration picks the new time up
        manager.regenerate()
        assert manager.sessions[0].start_time == time(10, 0)

    def test_unchanged_value_does_not_regenerate(self, manager):
        """Test that setting an input to its current value keeps edits"""
        manager.edit_session(2, "hours", "3")
        manager.update_input(total_hours=5)
        assert manager.sessions[1].hours == 3

    def test_empty_weekdays_keeps_sessions(self, manager):
        """Test that clearing every weekday leaves the last schedule in place"""
        manager.toggle_weekday("mon")
        before = list(manager.sessions)
        assert [s.date.isoformat() for s in before] == ["2024-01-03", "2024-01-10", "2024-01-17"]

        manager.toggle_weekday("wed")
        assert manager.schedule_input.weekdays == frozenset()
        assert manager.sessions == before

    def test_toggle_weekday(self, manager):
        """Test that adding a weekday regenerates with it"""
        manager.toggle_weekday("tue")
        assert [s.date for s in manager.sessions] == [date(2024, 1, 1), date(2024, 1, 2), date(2024, 1, 3)]

    def test_excluded_dates(self, manager):
        """Test adding and removing excluded dates"""
        manager.add_excluded_date("2024-01-03")
        assert [s.date.isoformat() for s in manager.sessions] == ["2024-01-01", "2024-01-08", "2024-01-10"]

        manager.remove_excluded_date("2024-01-03")
        assert [s.date.isoformat() for s in manager.sessions] == ["2024-01-01", "2024-01-03", "2024-01-08"]

    def test_rejected_input_leaves_state(self, manager):
        """Test that an input which cannot make progress is not applied"""
        before = list(manager.sessions)
        with pytest.raises(ScheduleInputError):
            manager.update_input(hours_per_day=0)
        assert manager.schedule_input.hours_per_day == 2
        assert manager.sessions == before

    def test_unknown_input(self, manager):
        with pytest.raises(ValueError):
            manager.update_input(colour="blue")

    def test_set_input_value(self, manager):
        """Test text values are parsed for each input"""
        manager.set_input_value("start-date", "2024-01-08")
        assert manager.sessions[0].date == date(2024, 1, 8)

        manager.set_input_value("weekdays", "fri, sat")
        assert manager.schedule_input.weekdays == frozenset({5, 6})

        manager.set_input_value("excluded_dates", "2024-01-12 2024-01-13")
        assert manager.sessions[0].date == date(2024, 1, 19)

        manager.set_input_value("hours_per_day", "5")
        assert [s.hours for s in manager.sessions] == [5]

        with pytest.raises(ValueError):
            manager.set_input_value("colour", "blue")

    def test_edit_by_position(self, manager):
        """Test that row operations address sessions by their shown number"""
        manager.add_session_above(2)
        assert [s.number for s in manager.sessions] == [1, 2, 3, 4]
        assert manager.sessions[1].hours == 0

        manager.edit_session(2, "hours", "1")
        assert [s.remaining for s in manager.sessions] == [3, 2, 0, 0]

        manager.remove_session(4)
        assert [s.number for s in manager.sessions] == [1, 2, 3]

        with pytest.raises(SessionNotFoundError):
            manager.remove_session(4)

    def test_validate_reports_edits(self, manager):
        """Test that edits breaking the rules show up as warnings"""
        # 2024-01-02 is a Tuesday
        manager.edit_session(1, "date", "2024-01-02")
        result = manager.validate()
        assert result.passed
        assert "session_weekday" in result.warnings


class TestCourseFiles:
    """Tests for loading and dumping course inputs"""

    def test_load_course(self, course_file):
        manager = ScheduleManager()
        course, schedule_input = manager.load_course(course_file)

        assert course.name == "Forklift Safety"
        assert course.trainee == "Jane Doe"
        assert schedule_input.start_time == time(8, 30)
        assert schedule_input.weekdays == frozenset({1, 3})
        assert [s.date.isoformat() for s in manager.sessions] == ["2024-01-01", "2024-01-08", "2024-01-10"]

    def test_defaults_fill_missing_fields(self, tmp_path):
        path = tmp_path / "partial.toml"
        path.write_text('[schedule]\nstart_date = "2024-01-01"\n')
        defaults = ScheduleInput(start_date=None, hours_per_day=3, total_hours=6, weekdays={2}, start_time=time(7, 0))

        manager = ScheduleManager()
        course, schedule_input = manager.load_course(path, defaults)

        assert course.name == ""
        assert schedule_input.hours_per_day == 3
        assert schedule_input.weekdays == frozenset({2})
        assert [s.date.isoformat() for s in manager.sessions] == ["2024-01-02", "2024-01-09"]

    @pytest.mark.parametrize("content", [
        "this is not toml",
        '[schedule]\nstart_date = "yesterday"\n',
        '[schedule]\nweekdays = ["funday"]\n',
        '[schedule]\nhours_per_day = "lots"\n',
        'schedule = 3\n',
    ])
    def test_invalid_course_file(self, tmp_path, content):
        path = tmp_path / "bad.toml"
        path.write_text(content)
        with pytest.raises(ValueError):
            ScheduleManager().load_course(path)

    def test_missing_course_file(self, tmp_path):
        with pytest.raises(ValueError):
            ScheduleManager().load_course(tmp_path / "missing.toml")

    def test_dump_inputs(self, course_file):
        manager = ScheduleManager()
        manager.load_course(course_file)
        data = manager.dump_inputs()

        assert data["course"] == {"name": "Forklift Safety", "trainee": "Jane Doe"}
        assert data["schedule"] == {
            "start_date": "2024-01-01",
            "start_time": "08:30",
            "hours_per_day": 2.0,
            "total_hours": 5.0,
            "weekdays": ["mon", "wed"],
            "excluded_dates": ["2024-01-03"],
        }

    def test_dump_then_load(self, course_file, tmp_path):
        """Test that dumped inputs load back into the same schedule"""
        import tomli_w

        first = ScheduleManager()
        first.load_course(course_file)

        copy = tmp_path / "copy.toml"
        copy.write_text(tomli_w.dumps(first.dump_inputs()))
        second = ScheduleManager()
        second.load_course(copy)

        assert second.schedule_input == first.schedule_input
        assert second.sessions == first.sessions
