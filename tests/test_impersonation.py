"""
Tests for impersonation.py - admin "view as".
"""

import logging

from career_findr.core.impersonation import STORAGE_KEY, ImpersonationSession


class TestStart:

    def test_admin_can_impersonate(self, admin, student):
        storage = {}
        session = ImpersonationSession(admin, storage)

        assert session.start(student) is True

        assert session.is_impersonating
        assert session.active_user.id == student.id
        assert session.original_user.id == admin.id
        assert storage[STORAGE_KEY]["impersonated_user"]["id"] == student.id
        assert storage[STORAGE_KEY]["original_user"]["id"] == admin.id

    def test_non_admin_is_a_silent_noop(self, company, student, caplog):
        storage = {}
        session = ImpersonationSession(company, storage)

        with caplog.at_level(logging.ERROR):
            assert session.start(student) is False

        assert storage == {}
        assert not session.is_impersonating
        assert session.active_user.id == company.id
        assert "Only admins can impersonate users" in caplog.text

    def test_missing_principal(self, student):
        storage = {}
        session = ImpersonationSession(None, storage)
        assert session.start(student) is False
        assert storage == {}


class TestStop:

    def test_stop_returns_admin_route(self, admin, student):
        storage = {}
        session = ImpersonationSession(admin, storage)
        session.start(student)

        assert session.stop() == "/admin/users"

        assert storage == {}
        assert not session.is_impersonating
        assert session.active_user.id == admin.id

    def test_stop_when_not_impersonating(self, admin):
        session = ImpersonationSession(admin, {})
        assert session.stop() == "/admin/users"


class TestRestore:

    def test_restored_for_same_admin(self, admin, student):
        storage = {}
        ImpersonationSession(admin, storage).start(student)

        restored = ImpersonationSession(admin, storage)

        assert restored.is_impersonating
        assert restored.active_user.id == student.id

    def test_ignored_for_other_user(self, admin, student, company):
        storage = {}
        ImpersonationSession(admin, storage).start(student)

        other = ImpersonationSession(company, storage)

        assert not other.is_impersonating
        assert other.active_user.id == company.id

    def test_ignored_after_demotion(self, admin, student, users):
        storage = {}
        ImpersonationSession(admin, storage).start(student)
        users.store.update(users.collection, admin.id, {"role": "company"})

        demoted = ImpersonationSession(users.get(admin.id), storage)

        assert not demoted.is_impersonating
        assert demoted.active_user.id == admin.id

    def test_malformed_state_is_discarded(self, admin):
        storage = {STORAGE_KEY: {"original_user": "nonsense"}}
        session = ImpersonationSession(admin, storage)
        assert not session.is_impersonating
        assert STORAGE_KEY not in storage
