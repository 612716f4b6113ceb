"""
Use Case: Batch Decisions

Applies a maker's APPROVE / REJECT decisions to many documents at once.

- The whole batch is validated first; any malformed item aborts the
  batch with an itemized error list and nothing is applied.
- Each item then commits on its own (document update + audit entry).
  One failing item never rolls back or blocks the others.
- Items run on a bounded worker pool. Items that share a document id are
  chained in submission order on a single worker so they never race.
"""

import logging
import re
from collections import OrderedDict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum

from govdoc.core.entities.decision import Disposition
from govdoc.core.entities.user import Actor, Role
from govdoc.core.errors import AuthorizationError, PipelineError, ValidationError
from govdoc.core.use_cases.document_lifecycle import DocumentLifecycleManager

logger = logging.getLogger(__name__)

DOCUMENT_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]{0,63}$")
MAX_COMMENT_LENGTH = 2000


class ReviewAction(str, Enum):
    APPROVE = "APPROVE"
    REJECT = "REJECT"

    @property
    def disposition(self) -> Disposition:
        return Disposition.APPROVED if self == ReviewAction.APPROVE else Disposition.REJECTED


@dataclass(frozen=True)
class DecisionAction:
    """One maker decision."""
    document_id: str
    action: ReviewAction
    comments: str | None = None


@dataclass
class ItemResult:
    document_id: str
    action: str
    success: bool
    status: str | None = None
    error: str | None = None
    error_code: str | None = None
    issuance_pending: bool = False

    def to_dict(self) -> dict:
        data = {
            "documentId": self.document_id,
            "action": self.action,
            "success": self.success,
            "status": self.status,
        }
        if not self.success:
            data["error"] = self.error
            data["errorCode"] = self.error_code
        if self.issuance_pending:
            data["issuancePending"] = True
        return data


@dataclass
class BatchResult:
    results: list[ItemResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def processed(self) -> int:
        return len(self.results)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success)

    def summary(self) -> dict:
        return {
            "total": self.total,
            "processed": self.processed,
            "succeeded": self.succeeded,
            "failed": self.failed,
        }


def parse_actions(raw_actions, max_batch_size: int = 100) -> list[DecisionAction]:
    """
    Validate a raw batch ({documentId, action, comments?} dicts).

    Raises:
        ValidationError: empty or oversized batch, or any malformed item.
            `details` lists every problem found, by item index.
    """
    if not isinstance(raw_actions, list) or not raw_actions:
        raise ValidationError("actions array required and must not be empty")
    if len(raw_actions) > max_batch_size:
        raise ValidationError(f"Maximum {max_batch_size} documents per batch (got {len(raw_actions)})")

    errors: list[dict] = []
    parsed: list[DecisionAction] = []
    for i, item in enumerate(raw_actions):
        if isinstance(item, DecisionAction):
            parsed.append(item)
            continue
        if not isinstance(item, dict):
            errors.append({"loc": ["actions", i], "msg": "action must be an object", "type": "type_error"})
            continue

        document_id = item.get("documentId")
        action = item.get("action")
        comments = item.get("comments")

        if not isinstance(document_id, str) or not DOCUMENT_ID_PATTERN.match(document_id):
            errors.append({
                "loc": ["actions", i, "documentId"],
                "msg": f"Invalid documentId {document_id!r}",
                "type": "value_error",
            })
        if action not in (ReviewAction.APPROVE.value, ReviewAction.REJECT.value):
            errors.append({
                "loc": ["actions", i, "action"],
                "msg": f'Invalid action "{action}". Must be APPROVE or REJECT',
                "type": "value_error",
            })
        if comments is not None and (not isinstance(comments, str) or len(comments) > MAX_COMMENT_LENGTH):
            errors.append({
                "loc": ["actions", i, "comments"],
                "msg": f"comments must be a string of at most {MAX_COMMENT_LENGTH} characters",
                "type": "value_error",
            })

        if not errors:
            parsed.append(DecisionAction(document_id, ReviewAction(action), comments))

    if errors:
        raise ValidationError(f"{len(errors)} invalid item(s) in batch", details=errors)
    return parsed


class BatchDecisionProcessor:
    """Runs validated maker decisions through the lifecycle manager."""

    def __init__(
        self,
        lifecycle: DocumentLifecycleManager,
        max_batch_size: int = 100,
        max_workers: int = 4,
        reviewer_role: Role = Role.MAKER,
    ):
        self._lifecycle = lifecycle
        self._max_batch_size = max_batch_size
        self._max_workers = max(1, max_workers)
        self._reviewer_role = Role(reviewer_role)

    def apply_batch(self, raw_actions, actor: Actor) -> BatchResult:
        """
        Validate then apply a batch of decisions.

        Raises:
            AuthorizationError: actor lacks the reviewer role.
            ValidationError: batch rejected wholesale; nothing applied.
        """
        if actor.role != self._reviewer_role:
            raise AuthorizationError(
                f"Only government staff ({self._reviewer_role.value}) can batch approve/reject documents"
            )
        actions = parse_actions(raw_actions, self._max_batch_size)

        # Chain items per document id, keep first-seen order of ids
        groups: "OrderedDict[str, list[tuple[int, DecisionAction]]]" = OrderedDict()
        for index, action in enumerate(actions):
            groups.setdefault(action.document_id, []).append((index, action))

        slots: list[ItemResult | None] = [None] * len(actions)
        workers = min(self._max_workers, len(groups))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="govdoc-batch") as pool:
            futures = [pool.submit(self._run_group, group, actor) for group in groups.values()]
            for future in futures:
                for index, item_result in future.result():
                    slots[index] = item_result

        result = BatchResult(results=slots)
        logger.info(
            f"Batch by {actor.user_id}: {result.succeeded}/{result.total} succeeded, {result.failed} failed"
        )
        return result

    def _run_group(self, group: list[tuple[int, DecisionAction]], actor: Actor) -> list[tuple[int, ItemResult]]:
        return [(index, self._apply_one(action, actor)) for index, action in group]

    def _apply_one(self, action: DecisionAction, actor: Actor) -> ItemResult:
        try:
            transition = self._lifecycle.apply_disposition(
                action.document_id,
                action.action.disposition,
                actor=actor,
                comments=action.comments,
            )
        except PipelineError as e:
            logger.warning(f"Batch item {action.document_id} ({action.action.value}) failed: {e.message}")
            return ItemResult(
                document_id=action.document_id,
                action=action.action.value,
                success=False,
                error=e.message,
                error_code=e.error_code,
            )
        except Exception as e:
            # Persistence faults stay local to this item
            logger.exception(f"Batch item {action.document_id} ({action.action.value}) crashed")
            return ItemResult(
                document_id=action.document_id,
                action=action.action.value,
                success=False,
                error=f"Processing failed: {e}",
                error_code="processing_failed",
            )

        return ItemResult(
            document_id=action.document_id,
            action=action.action.value,
            success=True,
            status=transition.document.status.value,
            issuance_pending=transition.issuance_pending,
        )
