"""Tests for the Celery beat schedule and app configuration."""

from datetime import timedelta

from slotbook.tasks.beat_schedule import PURGE_EXPIRED_SLOTS_TASK, get_beat_schedule


class TestBeatSchedule:
    def test_default_interval_from_settings(self, test_settings, monkeypatch):
        monkeypatch.setattr(test_settings, "slot_cleanup_interval_minutes", 15)

        entry = get_beat_schedule()["purge-expired-slots"]

        assert entry["task"] == PURGE_EXPIRED_SLOTS_TASK
        assert entry["schedule"] == timedelta(minutes=15)
        assert entry["options"] == {"queue": "maintenance", "expires": 900}

    def test_explicit_interval(self):
        entry = get_beat_schedule(interval_minutes=5)["purge-expired-slots"]

        assert entry["schedule"] == timedelta(minutes=5)


class TestCeleryApp:
    def test_app_routes_cleanup_to_maintenance(self):
        from slotbook.tasks.celery_app import celery_app

        assert celery_app.conf.task_routes["slotbook.tasks.slot_cleanup.*"] == {"queue": "maintenance"}
        assert "purge-expired-slots" in celery_app.conf.beat_schedule
        assert celery_app.conf.timezone == "UTC"

    def test_redis_broker_gets_database_number(self, test_settings, monkeypatch):
        from slotbook.tasks.celery_app import create_celery_app

        monkeypatch.setattr(test_settings, "celery_broker_url", "redis://broker.internal:6379")

        app = create_celery_app()

        assert app.conf.broker_url == "redis://broker.internal:6379/0"
