"""
Tests for routing.py - role-based route gating.
"""

import pytest

from career_findr.core.routing import DASHBOARD_ROUTES, dashboard_for, redirect_for
from career_findr.schemas.schemas import UserAccount


class TestRedirectFor:

    def test_allowed_role_stays(self):
        assert redirect_for({"role": "admin"}, ["admin"]) is None

    def test_missing_user_goes_to_login(self):
        assert redirect_for(None, ["admin"]) == "/login"

    def test_missing_role_goes_to_login(self):
        assert redirect_for({"email": "a@b.c"}, ["admin"]) == "/login"
        assert redirect_for({"role": ""}, ["admin"]) == "/login"

    @pytest.mark.parametrize("role", ["student", "institute", "company"])
    def test_disallowed_role_goes_home(self, role):
        assert redirect_for({"role": role}, ["admin"]) == DASHBOARD_ROUTES[role]

    def test_unknown_role_goes_to_landing(self):
        assert redirect_for({"role": "alumni"}, ["admin"]) == "/"

    def test_case_and_whitespace_insensitive(self):
        assert redirect_for({"role": " Admin "}, ["admin"]) is None
        assert redirect_for({"role": "STUDENT"}, ["Admin"]) == "/dashboard/student"

    def test_no_allowed_roles_admits_any_role(self):
        assert redirect_for({"role": "company"}) is None

    def test_accepts_account_objects(self):
        user = UserAccount(id="1", role="company")
        assert redirect_for(user, ["company", "admin"]) is None
        assert redirect_for(user, ["student"]) == "/dashboard/company"


class TestDashboardFor:

    def test_each_role(self):
        assert dashboard_for("student") == "/dashboard/student"
        assert dashboard_for("institute") == "/dashboard/institute"
        assert dashboard_for("company") == "/dashboard/company"
        assert dashboard_for("admin") == "/dashboard/admin"

    def test_no_role(self):
        assert dashboard_for(None) == "/login"
