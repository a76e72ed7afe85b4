"""
Erros tipados do domínio.

Cada operação falha com exatamente um destes erros; a camada HTTP usa
`status_code` para montar a resposta `{"success": false, "error": ...}`.
`StoreError` indica falha do banco (não é regra de negócio).
"""
from __future__ import annotations


class DomainError(Exception):
    status_code: int = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(DomainError):
    status_code = 404


class InvalidStateError(DomainError):
    status_code = 400


class ConflictError(DomainError):
    status_code = 409


class ValidationError(DomainError):
    status_code = 400


class AuthError(DomainError):
    status_code = 401


class StoreError(Exception):
    """Falha técnica do banco, propagada sem retry."""

    status_code = 503

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
