"""
Domain Layer

Contains pure business logic organized by bounded contexts:
- shared/: Cross-cutting types, messages and exceptions
- session/: Session aggregate, queue, votes and the persistence contracts
"""

from shared_queue.domain.shared.exceptions import DomainError

__all__ = [
    "DomainError",
]
