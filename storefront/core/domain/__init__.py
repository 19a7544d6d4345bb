"""
Domain Layer - Core building blocks

- Entities: Objects with identity and lifecycle
- Value Objects: Immutable objects compared by value
- Exceptions: Domain-specific error handling
"""

from storefront.core.domain.entities import AggregateRoot, Entity, generate_uuid_str
from storefront.core.domain.exceptions import (
    DomainException,
    EntityNotFoundException,
    IntegrationException,
    InvalidOperationException,
    InvalidSignatureException,
    PersistenceException,
    ValidationException,
)
from storefront.core.domain.value_objects import (
    PAISE,
    StatusEnum,
    ValueObject,
    round_currency,
)

__all__ = [
    # Entities
    "Entity",
    "AggregateRoot",
    "generate_uuid_str",
    # Value Objects
    "ValueObject",
    "StatusEnum",
    "PAISE",
    "round_currency",
    # Exceptions
    "DomainException",
    "ValidationException",
    "EntityNotFoundException",
    "InvalidOperationException",
    "InvalidSignatureException",
    "IntegrationException",
    "PersistenceException",
]
