"""Shared pytest fixtures for all test files."""
from __future__ import annotations

import itertools
from types import SimpleNamespace

import pytest
from flask import g
from flask_login import FlaskLoginClient

from claimflow import create_app, db
from claimflow.models import Claim, ClaimStatus, ClaimType, PortalRole, User
from claimflow.services.workflow import WorkflowDriver


class _PerRequestLoginClient(FlaskLoginClient):
    """Requests reuse the fixture's app context, so drop Flask-Login's cached user on g."""

    def open(self, *args, **kwargs):
        g.pop("_login_user", None)
        return super().open(*args, **kwargs)


@pytest.fixture
def app():
    """Fresh application with an in-memory SQLite database per test."""
    app = create_app("testing")
    app.test_client_class = _PerRequestLoginClient
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def driver(app):
    return WorkflowDriver(app.extensions["claimflow_stages"])


@pytest.fixture
def make_user(app):
    def _make(email, role=PortalRole.EMPLOYEE, manager_email=None, torch_bearer=False, full_name=None, is_active=True):
        user = User(
            email=email,
            full_name=full_name or email.split("@")[0].title(),
            portal_role=getattr(role, "value", role),
            manager_email=manager_email,
            torch_bearer=torch_bearer,
            is_active=is_active,
        )
        db.session.add(user)
        db.session.commit()
        return user

    return _make


@pytest.fixture
def make_claim(app):
    counter = itertools.count(1)

    def _make(employee, status=ClaimStatus.SUBMITTED, claim_type=ClaimType.NORMAL, amount=1500, is_bulk_upload=False):
        claim = Claim(
            claim_number=f"CLM-TEST-{next(counter):04d}",
            claim_type=claim_type,
            employee_email=employee.email,
            employee_name=employee.full_name,
            amount=amount,
            description="Client visit travel",
            status=getattr(status, "value", status),
            is_bulk_upload=is_bulk_upload,
        )
        db.session.add(claim)
        db.session.commit()
        return claim

    return _make


@pytest.fixture
def org(make_user):
    """A small organisation with every pipeline role filled."""
    suresh = make_user("suresh@example.com", PortalRole.MANAGER, full_name="Suresh Kumar")
    return SimpleNamespace(
        junior_admin=make_user("jamie@example.com", PortalRole.JUNIOR_ADMIN, full_name="Jamie Rao"),
        admin_head=make_user("anita@example.com", PortalRole.ADMIN_HEAD, full_name="Anita Shah"),
        cro=make_user("carlos@example.com", PortalRole.CRO, full_name="Carlos Diaz"),
        cfo=make_user("farah@example.com", PortalRole.CFO, full_name="Farah Khan"),
        finance=make_user("fin@example.com", PortalRole.FINANCE, full_name="Finance Desk"),
        admin=make_user("root@example.com", PortalRole.ADMIN, full_name="Portal Admin"),
        suresh=suresh,
        priya=make_user("priya@example.com", manager_email=suresh.email, full_name="Priya Nair"),
        rajesh=make_user("rajesh@example.com", full_name="Rajesh Iyer"),
        tara=make_user("tara@example.com", manager_email=suresh.email, torch_bearer=True, full_name="Tara Menon"),
    )
