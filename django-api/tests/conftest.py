"""Pytest configuration and shared fixtures."""

from datetime import timedelta

import pytest
from django.utils import timezone
from rest_framework.test import APIClient

from admissions import models as orm
from admissions.domain.models import Actor
from admissions.domain.value_objects import UserId
from admissions.services.factory import build_services


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture
def make_user(django_user_model):
    counter = {"n": 0}

    def make(username: str | None = None, **extra):
        counter["n"] += 1
        username = username or f"user{counter['n']}"
        extra.setdefault("email", f"{username}@example.com")
        return django_user_model.objects.create_user(username=username, password="pw", **extra)

    return make


@pytest.fixture
def organizer(make_user):
    return make_user("organizer")


@pytest.fixture
def organization(organizer):
    org = orm.Organization.objects.create(
        name="Tech Meetups", status=orm.Organization.Status.APPROVED
    )
    org.owners.add(organizer)
    return org


@pytest.fixture
def make_event(organization):
    def make(capacity: int = 10, **extra):
        now = timezone.now()
        extra.setdefault("title", "PyCon Local")
        extra.setdefault("starts_at", now + timedelta(days=7))
        extra.setdefault("ends_at", now + timedelta(days=7, hours=8))
        return orm.Event.objects.create(organization=organization, capacity=capacity, **extra)

    return make


@pytest.fixture
def services():
    return build_services()


@pytest.fixture
def as_actor():
    def resolve(user) -> Actor:
        return Actor(user_id=UserId(user.pk), is_admin=user.is_staff)

    return resolve


@pytest.fixture
def admin_actor(admin_user, as_actor) -> Actor:
    return as_actor(admin_user)

