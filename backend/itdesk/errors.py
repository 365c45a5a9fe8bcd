"""Domain error taxonomy.

Services raise these; the Flask error handler registered in ``create_app``
renders them with the standard ``{"error": {status, title, detail}}`` shape.
"""
from __future__ import annotations
from typing import Optional


class ItDeskError(Exception):
    status = 500
    title = 'Internal Server Error'

    def __init__(self, detail: Optional[str] = None):
        super().__init__(detail or self.title)
        self.detail = detail or self.title

    def to_payload(self):
        return {
            'error': {
                'status': self.status,
                'title': self.title,
                'detail': self.detail,
            }
        }


class ValidationError(ItDeskError):
    status = 400
    title = 'Bad Request'


class InvalidTransitionError(ValidationError):
    pass


class InvalidCredentialsError(ItDeskError):
    status = 401
    title = 'Invalid Credentials'


class PermissionDeniedError(ItDeskError):
    status = 403
    title = 'Forbidden'


class NotFoundError(ItDeskError):
    status = 404
    title = 'Not Found'


class AlreadyExistsError(ItDeskError):
    status = 409
    title = 'Already Exists'


class ConflictError(ItDeskError):
    status = 409
    title = 'Conflict'


class InsufficientStockError(ItDeskError):
    status = 409
    title = 'Insufficient Stock'

    def __init__(self, requested: int, available: int):
        super().__init__(f'requested {requested} but only {available} available')
        self.requested = requested
        self.available = available

    def to_payload(self):
        payload = super().to_payload()
        payload['error']['requested'] = self.requested
        payload['error']['available'] = self.available
        return payload


class DatastoreError(ItDeskError):
    status = 503
    title = 'Datastore Error'


class IntegrityViolation(DatastoreError):
    pass


__all__ = [
    'ItDeskError', 'ValidationError', 'InvalidTransitionError', 'InvalidCredentialsError',
    'PermissionDeniedError', 'NotFoundError', 'AlreadyExistsError', 'ConflictError',
    'InsufficientStockError', 'DatastoreError', 'IntegrityViolation',
]
