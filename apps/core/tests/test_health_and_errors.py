"""
Tests for health checks, error formatting and request tracing.
"""
from unittest.mock import patch

import pytest
from django.db import DatabaseError
from django_ratelimit.exceptions import Ratelimited
from rest_framework.test import APIClient

from apps.core.exceptions import (
    NotFound,
    StateConflict,
    StorageFailure,
    ValidationError,
    custom_exception_handler,
)
from apps.core.results import ActionResult


@pytest.mark.django_db
class TestHealthCheck:

    @pytest.mark.parametrize('host', ['www.local.test', 'app.local.test', 'admin.local.test', 'ops.local.test'])
    def test_healthy_on_every_domain(self, host):
        response = APIClient(HTTP_HOST=host).get('/healthz')

        assert response.status_code == 200
        assert response.json() == {'status': 'healthy', 'database': 'healthy'}

    def test_database_down(self):
        with patch('apps.core.views.connection') as connection:
            connection.cursor.side_effect = DatabaseError('connection refused')
            response = APIClient(HTTP_HOST='app.local.test').get('/healthz')

        assert response.status_code == 503
        assert response.json()['database'] == 'unhealthy'

    def test_request_id_is_echoed(self):
        response = APIClient(HTTP_HOST='app.local.test').get('/healthz', HTTP_X_REQUEST_ID='trace-42')

        assert response['X-Request-ID'] == 'trace-42'

    def test_request_id_is_generated(self):
        response = APIClient(HTTP_HOST='app.local.test').get('/healthz')

        assert response['X-Request-ID']


class TestExceptionHandler:

    def test_taxonomy_exception(self):
        response = custom_exception_handler(StateConflict('Ownership changed'), {'request': None})

        assert response.status_code == 409
        assert response.data['error'] == {'code': 'STATE_CONFLICT', 'message': 'Ownership changed'}

    def test_validation_error_carries_fields(self):
        exc = ValidationError(field_errors={'email': 'Enter a valid email address'})

        response = custom_exception_handler(exc, {'request': None})

        assert response.status_code == 400
        assert response.data['error']['fields'] == {'email': 'Enter a valid email address'}

    def test_storage_failure_is_opaque(self):
        response = custom_exception_handler(StorageFailure(), {'request': None})

        assert response.status_code == 503
        assert response.data['error']['message'] == 'Something went wrong. Please try again.'

    def test_ratelimited(self):
        response = custom_exception_handler(Ratelimited(), {'request': None})

        assert response.status_code == 429
        assert response['Retry-After'] == '60'

    def test_unexpected_exception(self):
        response = custom_exception_handler(KeyError('boom'), {'request': None})

        assert response.status_code == 500
        assert response.data['error']['code'] == 'INTERNAL_ERROR'
        assert 'boom' not in str(response.data)


class TestActionResult:

    def test_success_shape(self):
        result = ActionResult.ok({'org_id': 'x'}, next_url='/members')

        assert result.to_dict() == {'success': True, 'next_url': '/members', 'data': {'org_id': 'x'}}

    def test_failure_shape(self):
        result = ActionResult.fail(NotFound())

        assert result.status_code == 404
        assert result.to_dict() == {
            'success': False,
            'next_url': None,
            'error': {'code': 'NOT_FOUND', 'message': 'Not found'},
        }
