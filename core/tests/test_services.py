"""
Core — Activity Log Tests

@file core/tests/test_services.py
"""

import uuid
from datetime import date
from decimal import Decimal

import pytest
from django.contrib.auth.models import AnonymousUser

from core.models import ActivityLog
from core.services import ActivityLogService, to_json_value
from tests.factories import UserFactory


@pytest.mark.django_db
class TestActivityLog:
    def test_create_activity_log(self):
        user = UserFactory()
        log = ActivityLogService.log(
            actor=user,
            action=ActivityLog.ActionChoices.CREATE,
            model_name='StockTransaction',
            object_id='txn-123',
            new_values={'quantity': Decimal('2.500')},
        )
        assert log.pk is not None
        assert log.actor == user
        assert log.new_values == {'quantity': '2.500'}

    def test_anonymous_actor_stored_as_null(self):
        log = ActivityLogService.log(
            actor=AnonymousUser(),
            action=ActivityLog.ActionChoices.UPDATE,
            model_name='StockItem',
            object_id='item-1',
        )
        assert log.actor is None


class TestToJsonValue:
    def test_nested_values_are_serialised(self):
        ref = uuid.uuid4()
        value = to_json_value({'ref': ref, 'on': date(2026, 1, 2), 'rows': [Decimal('1.5'), None]})
        assert value == {'ref': str(ref), 'on': '2026-01-02', 'rows': ['1.5', None]}
