"""
Project-wide DRF exception handler.

Every error leaves the API as {"error": "<message>"}; validation errors also
carry the per-field messages under "fields".
"""

import logging

from django.db import DatabaseError
from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


def _first_message(detail):
    if isinstance(detail, dict):
        for key, value in detail.items():
            message = _first_message(value)
            if message:
                return message if key == 'non_field_errors' else f"{key}: {message}"
        return ''
    if isinstance(detail, (list, tuple)):
        for item in detail:
            message = _first_message(item)
            if message:
                return message
        return ''
    return str(detail)


def error_envelope_handler(exc, context):
    response = exception_handler(exc, context)

    if response is None:
        if isinstance(exc, DatabaseError):
            view = context.get('view')
            logger.error("Database error in %s: %s", view.__class__.__name__ if view else 'view', exc, exc_info=True)
            return Response({'error': str(exc)}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
        return None

    if isinstance(exc, ValidationError):
        fields = response.data if isinstance(response.data, dict) else {'non_field_errors': response.data}
        response.data = {
            'error': _first_message(fields) or 'Invalid input',
            'fields': fields,
        }
        return response

    data = response.data
    if isinstance(data, dict) and 'detail' in data:
        response.data = {'error': str(data['detail'])}
    elif not (isinstance(data, dict) and 'error' in data):
        response.data = {'error': _first_message(data)}
    return response
