from types import SimpleNamespace

from app.homecare.identity import AuthSession
from app.homecare.rbac import (
    LOGIN_ENDPOINT,
    REASON_FORBIDDEN,
    REASON_MISSING_PROFILE,
    REASON_UNAUTHENTICATED,
    decide_route,
    home_endpoint_for,
)


def _auth(role):
    user = SimpleNamespace(id="u-1", email="u@example.com")
    profile = SimpleNamespace(id="u-1", role=role) if role else None
    return AuthSession(user=user, profile=profile)


def test_no_session_goes_to_login():
    decision = decide_route(None, {"admin"})
    assert decision.endpoint == LOGIN_ENDPOINT
    assert decision.reason == REASON_UNAUTHENTICATED


def test_no_session_checked_before_role():
    # Even an empty requirement cannot be met without a session.
    assert decide_route(None, set()).reason == REASON_UNAUTHENTICATED


def test_missing_profile_goes_to_login():
    decision = decide_route(_auth(None), {"admin"})
    assert decision.endpoint == LOGIN_ENDPOINT
    assert decision.reason == REASON_MISSING_PROFILE


def test_unknown_role_goes_to_login():
    decision = decide_route(_auth("auditor"), {"auditor"})
    assert decision.endpoint == LOGIN_ENDPOINT
    assert decision.reason == REASON_MISSING_PROFILE


def test_company_owner_on_admin_page_goes_to_agency_home():
    decision = decide_route(_auth("company_owner"), {"admin"})
    assert decision.endpoint == "agency_area.index"
    assert decision.reason == REASON_FORBIDDEN


def test_allowed_role_passes():
    assert decide_route(_auth("expert"), {"expert", "admin"}) is None


def test_home_endpoints():
    assert home_endpoint_for("admin") == "admin_area.index"
    assert home_endpoint_for("expert") == "expert_area.index"
    assert home_endpoint_for("company_owner") == "agency_area.index"
    assert home_endpoint_for("staff_member") == "agency_area.index"
    assert home_endpoint_for(None) is None
