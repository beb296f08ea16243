"""
Tests for the Sambatan change feed (GET /api/sambatan/changes/).
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.utils.dateparse import parse_datetime
from rest_framework import status
from rest_framework.test import APIClient

from marketplace.models import MarketplaceProduct, Sambatan
from marketplace.services import create_sambatan, join_sambatan

User = get_user_model()

CHANGES_URL = '/api/sambatan/changes/'


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def users(db):
    return {
        name: User.objects.create_user(
            username=name,
            email=f'{name}@example.com',
            password='testpass123'
        )
        for name in ('seller', 'initiator', 'buyer')
    }


@pytest.fixture
def products(users):
    return [
        MarketplaceProduct.objects.create(
            seller=users['seller'],
            name=name,
            price=Decimal('150000.00'),
            moderation_status='approved',
        )
        for name in ('Jasmine 30ml', 'Sandalwood 30ml')
    ]


@pytest.mark.django_db
def test_without_since_returns_everything_oldest_first(api_client, users, products):
    first = create_sambatan(users['initiator'], products[0], 3)
    second = create_sambatan(users['initiator'], products[1], 3)

    response = api_client.get(CHANGES_URL)

    assert response.status_code == status.HTTP_200_OK
    assert [row['id'] for row in response.data['results']] == [first.id, second.id]
    assert response.data['cursor'] == second.updated_at.isoformat()
    assert len(response.data['results'][0]['participants']) == 1


@pytest.mark.django_db
def test_cursor_returns_only_later_changes(api_client, users, products, settings):
    settings.SAMBATAN_CHANGES_OVERLAP_SECONDS = 0
    first = create_sambatan(users['initiator'], products[0], 3)
    create_sambatan(users['initiator'], products[1], 3)

    cursor = api_client.get(CHANGES_URL).data['cursor']

    unchanged = api_client.get(CHANGES_URL, {'since': cursor})
    assert unchanged.status_code == status.HTTP_200_OK
    assert unchanged.data['results'] == []
    assert unchanged.data['cursor'] == cursor

    join_sambatan(first.id, users['buyer'], 2)

    changed = api_client.get(CHANGES_URL, {'since': cursor})
    assert [row['id'] for row in changed.data['results']] == [first.id]
    assert changed.data['results'][0]['status'] == 'closed'
    assert changed.data['results'][0]['current_quantity'] == 3
    assert changed.data['cursor'] != cursor


@pytest.mark.django_db
def test_empty_feed_without_since_has_no_cursor(api_client):
    response = api_client.get(CHANGES_URL)

    assert response.status_code == status.HTTP_200_OK
    assert response.data == {'cursor': None, 'results': []}


@pytest.mark.django_db
@pytest.mark.parametrize('since', ['yesterday', '2026-13-45T00:00:00Z', 'not-a-date'])
def test_invalid_since_returns_400(api_client, since):
    response = api_client.get(CHANGES_URL, {'since': since})

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert 'since' in response.data['detail']


@pytest.mark.django_db
def test_change_stamped_just_before_cursor_is_still_delivered(api_client, users, products, settings):
    settings.SAMBATAN_CHANGES_OVERLAP_SECONDS = 5
    first = create_sambatan(users['initiator'], products[0], 3)
    cursor = api_client.get(CHANGES_URL).data['cursor']

    # Committed after the poll but stamped before the cursor
    late = create_sambatan(users['buyer'], products[1], 3)
    Sambatan.objects.filter(pk=late.pk).update(updated_at=parse_datetime(cursor) - timedelta(seconds=1))

    response = api_client.get(CHANGES_URL, {'since': cursor})

    assert response.status_code == status.HTTP_200_OK
    assert [row['id'] for row in response.data['results']] == [late.id, first.id]
    assert response.data['cursor'] == cursor


@pytest.mark.django_db
def test_only_resent_rows_keep_cursor_in_place(api_client, users, products, settings):
    settings.SAMBATAN_CHANGES_OVERLAP_SECONDS = 5
    first = create_sambatan(users['initiator'], products[0], 3)
    cursor = api_client.get(CHANGES_URL).data['cursor']
    Sambatan.objects.filter(pk=first.pk).update(updated_at=parse_datetime(cursor) - timedelta(seconds=2))

    response = api_client.get(CHANGES_URL, {'since': cursor})

    assert [row['id'] for row in response.data['results']] == [first.id]
    assert response.data['cursor'] == cursor


@pytest.mark.django_db
def test_change_older_than_overlap_is_not_resent(api_client, users, products, settings):
    settings.SAMBATAN_CHANGES_OVERLAP_SECONDS = 5
    first = create_sambatan(users['initiator'], products[0], 3)
    cursor = api_client.get(CHANGES_URL).data['cursor']
    Sambatan.objects.filter(pk=first.pk).update(updated_at=parse_datetime(cursor) - timedelta(seconds=60))

    response = api_client.get(CHANGES_URL, {'since': cursor})

    assert response.data['results'] == []
    assert response.data['cursor'] == cursor
