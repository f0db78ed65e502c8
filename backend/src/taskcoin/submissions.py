"""
Submission State Machine.

pending → approved | rejected, both terminal.

- submit: one unit of task capacity is taken in the same transaction that
  inserts the pending submission.
- approve: the worker is credited the submission's captured payableAmount in
  the same transaction that moves it out of pending.
- reject: one unit of capacity goes back to the task in the same transaction
  that moves it out of pending. If the task has been closed meanwhile, the
  slot's escrow goes back to the buyer instead.
"""
import math
import uuid
from typing import Any, Dict, List, Optional

from .accounts import AccountService
from .config import config
from .errors import (AlreadyExists, CapacityExhausted, Forbidden, InvalidInput, InvalidTransition,
                     MissingField, NotFound, StoreUnavailable)
from .escrow import TaskEscrowEngine
from .logging import logger
from .models import Role, SubmissionStatus
from .notifications import NotificationEmitter, utc_now
from .store import LedgerStore, Put, TransactionCancelled, Update, equals


class SubmissionStateMachine:

    def __init__(self, store: LedgerStore, accounts: AccountService, escrow: TaskEscrowEngine,
                 notifications: NotificationEmitter):
        self.store = store
        self.accounts = accounts
        self.escrow = escrow
        self.notifications = notifications
        self.table = config.SUBMISSIONS_TABLE

    def _key(self, submission_id: str) -> Dict[str, Any]:
        return self.store.key_for(self.table, submission_id)

    def get_submission(self, submission_id: str) -> Dict[str, Any]:
        submission = self.store.get(self.table, self._key(submission_id))
        if not submission:
            raise NotFound("Submission not found")
        return submission

    def submit(self, worker_email: str, task_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Submit work against a task with remaining capacity.

        Raises:
            MissingField: no submissionDetails
            NotFound: unknown worker or task
            CapacityExhausted: the task needs no more workers
        """
        details = (payload or {}).get('submissionDetails')
        if not details:
            raise MissingField('submissionDetails')

        worker = self.accounts.get_user(worker_email)

        for attempt in range(1, config.STORE_MAX_RETRIES + 1):
            task = self.escrow.get_task(task_id)
            if task['requiredWorkers'] <= 0:
                raise CapacityExhausted("Task is no longer accepting submissions")

            submission = {
                'submissionId': str(uuid.uuid4()),
                'taskId': task_id,
                'taskTitle': task['title'],
                'payableAmount': task['payableAmount'],
                'workerEmail': worker_email,
                'workerName': worker.get('name', ''),
                'buyerEmail': task['buyerEmail'],
                'buyerName': task.get('buyerName', ''),
                'submissionDetails': details,
                'status': SubmissionStatus.PENDING,
                'createdAt': utc_now(),
            }

            try:
                self.store.transact([self.escrow.claim_slot_op(task), Put(self.table, submission)])
            except TransactionCancelled as e:
                if e.failed(1) and not e.failed(0):
                    raise AlreadyExists("Submission id collision")
                current = self.escrow.get_task(task_id)
                if current['requiredWorkers'] <= 0:
                    raise CapacityExhausted("Task is no longer accepting submissions")
                logger.info(f"Task {task_id} changed during submission, retrying (attempt {attempt})")
                continue

            logger.info(f"Submission {submission['submissionId']} by {worker_email} for task {task_id}")
            self.notifications.emit(
                task['buyerEmail'],
                f"{submission['workerName'] or worker_email} submitted work for \"{task['title']}\"",
                '/dashboard/task-review'
            )
            return submission

        raise StoreUnavailable("Task kept changing during submission")

    def _pending_for_review(self, submission_id: str, reviewer) -> Dict[str, Any]:
        submission = self.get_submission(submission_id)
        if reviewer.role != Role.ADMIN and submission['buyerEmail'] != reviewer.email:
            raise Forbidden("Not the buyer of this submission")
        if submission['status'] != SubmissionStatus.PENDING:
            raise InvalidTransition(f"Submission is already {submission['status']}")
        return submission

    def _status_op(self, submission: Dict[str, Any], status: str, reviewer) -> Update:
        return Update(
            self.table,
            self._key(submission['submissionId']),
            sets={'status': status, 'reviewedBy': reviewer.name or reviewer.email, 'reviewedAt': utc_now()},
            conditions=[equals('status', SubmissionStatus.PENDING)]
        )

    def _lost_race(self, submission_id: str):
        """Translate a failed status precondition into the right error."""
        current = self.get_submission(submission_id)
        return InvalidTransition(f"Submission is already {current['status']}")

    def approve(self, submission_id: str, reviewer) -> Dict[str, Any]:
        """Approve a pending submission and pay the worker its payableAmount."""
        submission = self._pending_for_review(submission_id, reviewer)
        amount = submission['payableAmount']

        try:
            self.store.transact([
                self._status_op(submission, SubmissionStatus.APPROVED, reviewer),
                self.accounts.credit_op(submission['workerEmail'], amount),
            ])
        except TransactionCancelled as e:
            if e.failed(0):
                raise self._lost_race(submission_id)
            raise NotFound("Worker not found")

        logger.info(f"Submission {submission_id} approved, {amount} coins to {submission['workerEmail']}")
        self.notifications.emit(
            submission['workerEmail'],
            f"You have earned {amount} coins from {reviewer.name or reviewer.email} "
            f"for completing \"{submission['taskTitle']}\"",
            '/dashboard'
        )
        submission['status'] = SubmissionStatus.APPROVED
        return submission

    def reject(self, submission_id: str, reviewer) -> Dict[str, Any]:
        """Reject a pending submission and reopen its slot on the task."""
        submission = self._pending_for_review(submission_id, reviewer)
        status_op = self._status_op(submission, SubmissionStatus.REJECTED, reviewer)

        try:
            self.store.transact([status_op, self.escrow.release_slot_op(submission['taskId'])])
        except TransactionCancelled as e:
            if e.failed(0):
                raise self._lost_race(submission_id)
            self._reject_for_closed_task(submission, status_op)

        logger.info(f"Submission {submission_id} rejected, slot returned to task {submission['taskId']}")
        self.notifications.emit(
            submission['workerEmail'],
            f"{reviewer.name or reviewer.email} rejected your submission for \"{submission['taskTitle']}\"",
            '/dashboard/my-submissions'
        )
        submission['status'] = SubmissionStatus.REJECTED
        return submission

    def _reject_for_closed_task(self, submission: Dict[str, Any], status_op: Update) -> None:
        """The task is gone, so the slot's escrow goes back to the buyer directly."""
        amount = submission['payableAmount']
        try:
            self.store.transact([status_op, self.accounts.credit_op(submission['buyerEmail'], amount)])
            logger.info(f"Task {submission['taskId']} closed, refunded {amount} coins to {submission['buyerEmail']}")
            return
        except TransactionCancelled as e:
            if e.failed(0):
                raise self._lost_race(submission['submissionId'])

        logger.warning(f"Buyer {submission['buyerEmail']} no longer exists, rejecting without refund")
        try:
            self.store.transact([status_op])
        except TransactionCancelled:
            raise self._lost_race(submission['submissionId'])

    def review(self, submission_id: str, reviewer, decision: str) -> Dict[str, Any]:
        """Apply a review decision ('approve'/'approved' or 'reject'/'rejected')."""
        status = SubmissionStatus.normalize(decision)
        if status == SubmissionStatus.APPROVED:
            return self.approve(submission_id, reviewer)
        if status == SubmissionStatus.REJECTED:
            return self.reject(submission_id, reviewer)
        raise InvalidInput(f"Invalid review decision: {decision}")

    def list_for_worker(self, worker_email: str, page: int = 1, limit: Optional[int] = None) -> Dict[str, Any]:
        """One page of a worker's submissions, newest first, with the total page count."""
        limit = limit or config.DEFAULT_PAGE_SIZE
        if page < 1 or limit < 1:
            raise InvalidInput("page and limit must be positive")

        submissions = list(self.store.query(self.table, 'WorkerIndex', worker_email, descending=True))
        start = (page - 1) * limit
        return {
            'submissions': submissions[start:start + limit],
            'page': page,
            'limit': limit,
            'total': len(submissions),
            'totalPages': math.ceil(len(submissions) / limit),
        }

    def list_pending_for_buyer(self, buyer_email: str) -> List[Dict[str, Any]]:
        return [s for s in self.store.query(self.table, 'BuyerIndex', buyer_email, descending=True)
                if s['status'] == SubmissionStatus.PENDING]
