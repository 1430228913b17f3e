"""
Tests for the account housekeeping jobs.
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from labsite.domain.models.user import local_today
from labsite.scheduler import jobs


class TestArchiveExpiredAccounts:
    @pytest.mark.asyncio
    async def test_archives_accounts_at_or_past_expiration(self, make_user, repo, db):
        today = local_today()
        past = make_user("past@lab.org", expiration_date=date(2001, 1, 1))
        due = make_user("due@lab.org", expiration_date=today)
        future = make_user("future@lab.org", expiration_date=today + timedelta(days=1))
        open_ended = make_user("open@lab.org", expiration_date=None)

        await jobs.archive_expired_accounts_job()

        db.expire_all()
        assert repo.get_by_id(past.id).is_archived is True
        assert repo.get_by_id(due.id).is_archived is True
        assert repo.get_by_id(future.id).is_archived is False
        assert repo.get_by_id(open_ended.id).is_archived is False

    def test_repository_reports_count(self, make_user, repo):
        make_user("a@lab.org", expiration_date=date(2001, 1, 1))
        make_user("b@lab.org", expiration_date=date(2001, 1, 1), is_archived=True)
        assert repo.archive_expired(local_today()) == 1
        assert repo.archive_expired(local_today()) == 0


class TestPurgeResetTokens:
    @pytest.mark.asyncio
    async def test_only_stale_tokens_are_cleared(self, make_user, repo, db):
        now = datetime.now(timezone.utc)
        stale = make_user("stale@lab.org")
        stale.set_reset_token("a" * 64, now - timedelta(minutes=5))
        repo.save(stale)
        live = make_user("live@lab.org")
        live.set_reset_token("b" * 64, now + timedelta(minutes=30))
        repo.save(live)

        await jobs.purge_expired_reset_tokens_job()

        db.expire_all()
        assert repo.get_by_id(stale.id).reset_password_token is None
        assert repo.get_by_id(stale.id).reset_password_expire is None
        assert repo.get_by_id(live.id).reset_password_token == "b" * 64


class TestScheduler:
    def test_registers_both_jobs(self, monkeypatch):
        started = []
        monkeypatch.setattr(jobs.scheduler, "start", lambda: started.append(True))
        jobs.start_scheduler()
        try:
            ids = {job.id for job in jobs.scheduler.get_jobs()}
            assert ids == {"archive_expired_accounts", "purge_expired_reset_tokens"}
            assert started == [True]
        finally:
            for job_id in ("archive_expired_accounts", "purge_expired_reset_tokens"):
                jobs.scheduler.remove_job(job_id)
