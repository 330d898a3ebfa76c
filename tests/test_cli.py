from datetime import date

from slotbook.app import seed_slots


def test_seed_slots_skips_weekends(allocator):
    # 2024-06-03 is a Monday
    created, skipped = seed_slots(allocator, date(2024, 6, 3), 7)
    assert (created, skipped) == (35, 0)

    days = {s.date for s in allocator.list_all_slots()}
    assert "2024-06-08" not in days
    assert "2024-06-09" not in days


def test_seed_slots_is_idempotent(allocator):
    seed_slots(allocator, date(2024, 6, 3), 1, first_hour=9, last_hour=10)
    created, skipped = seed_slots(allocator, date(2024, 6, 3), 1, first_hour=9, last_hour=11)
    assert (created, skipped) == (1, 2)
    assert [s.time for s in allocator.list_all_slots()] == ["09:00", "10:00", "11:00"]


def test_seed_slots_with_weekends(allocator):
    created, _ = seed_slots(allocator, date(2024, 6, 8), 2, first_hour=8, last_hour=8, weekends=True)
    assert created == 2


def test_seed_command(app):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["seed-slots", "--start", "2024-06-03", "--days", "7"])
    assert result.exit_code == 0, result.output
    assert "35 slots created, 0 already existed" in result.output

    result = runner.invoke(args=["seed-slots", "--start", "2024-06-03", "--days", "7"])
    assert "0 slots created, 35 already existed" in result.output


def test_seed_command_rejects_inverted_hours(app):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["seed-slots", "--first-hour", "15", "--last-hour", "9"])
    assert result.exit_code != 0


def test_init_db_command(app):
    result = app.test_cli_runner().invoke(args=["init-db"])
    assert result.exit_code == 0
    assert "Tables created" in result.output
