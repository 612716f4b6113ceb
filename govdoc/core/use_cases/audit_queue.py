"""
Use Case: Audit Queue

Paginated view of documents parked in the review bucket (latest
disposition REVIEW, status still PENDING), oldest submission first.
FIFO is a query-time sort; reviewers may resolve items in any order.
"""

from dataclasses import dataclass

from govdoc.core.entities.user import Actor, Role
from govdoc.core.errors import AuthorizationError, ValidationError
from govdoc.core.interfaces.document_repository import IDocumentRepository, ReviewCandidate


@dataclass
class AuditQueuePage:
    items: list[ReviewCandidate]
    total: int
    skip: int
    take: int

    @property
    def count(self) -> int:
        return len(self.items)

    @property
    def has_more(self) -> bool:
        return self.skip + self.count < self.total


class AuditQueueUseCase:
    """Lists the review bucket for makers."""

    def __init__(self, repository: IDocumentRepository, max_take: int = 100, reviewer_role: Role = Role.MAKER):
        self._repo = repository
        self._max_take = max_take
        self._reviewer_role = Role(reviewer_role)

    def list_pending(self, skip: int = 0, take: int = 50, actor: Actor | None = None) -> AuditQueuePage:
        """
        Args:
            skip: rows to skip, >= 0.
            take: page size, 1..max_take. Out of range is an error, never clamped.
            actor: when given, must hold the reviewer role.
        """
        if actor is not None and actor.role != self._reviewer_role:
            raise AuthorizationError(f"Only {self._reviewer_role.value} staff can access the audit queue")

        errors = []
        if isinstance(skip, bool) or not isinstance(skip, int) or skip < 0:
            errors.append({"loc": ["skip"], "msg": "skip must be an integer >= 0", "type": "value_error"})
        if isinstance(take, bool) or not isinstance(take, int) or not 1 <= take <= self._max_take:
            errors.append({
                "loc": ["take"],
                "msg": f"take must be an integer between 1 and {self._max_take}",
                "type": "value_error",
            })
        if errors:
            raise ValidationError("Invalid pagination parameters", details=errors)

        items, total = self._repo.list_pending_review(skip=skip, take=take)
        return AuditQueuePage(items=items, total=total, skip=skip, take=take)
