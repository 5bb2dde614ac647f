"""
Legal Workflow Engine
=====================

In-process priority queue and state machine that carries a LegalQuery from
intake to a finished LegalResponse:

    RECEIVE_QUERY -> ANALYZE_JURISDICTION -> ASSESS_RISK -> RESEARCH_LAW
        -> [REVIEW_PRECEDENTS] -> DRAFT_ADVICE -> FINAL_REVIEW

Any failure moves the task to ERROR. Every transition is appended to the
task's case history, and finished tasks are kept in a bounded buffer so
their history can still be inspected.

Usage:
    from lexflow.services.legal import build_workflow_service

    service = build_workflow_service()
    task_id = service.add_task(query)
    response = await service.process_next_task()
"""

import asyncio
import itertools
import logging
from collections import OrderedDict
from dataclasses import replace
from typing import Any, Dict, List, Optional
from uuid import uuid4

from lexflow.core.config import Settings, get_settings
from lexflow.core.utc import epoch_millis, utc_now

from .analysis_client import LegalAnalysisClient
from .citations import CitationExtractor
from .heuristics import (
    HeuristicContext,
    LegalHeuristic,
    clamp_score,
    get_legal_heuristics,
    risk_level_from_score,
)
from .models import (
    STATE_ORDER,
    URGENCY_ORDER,
    CaseHistoryEntry,
    LegalQuery,
    LegalResponse,
    TaskOutcome,
    WorkflowState,
    WorkflowTask,
)
from .synthesizer import (
    NON_BILLABLE,
    analyze_jurisdiction,
    calculate_billing,
    generate_confidentiality_notice,
    generate_legal_disclaimer,
    generate_next_steps,
    generate_recommendations,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENT_TASKS = 5
DEFAULT_TASK_HISTORY_LIMIT = 100


class InvalidStateTransition(Exception):
    """A task was asked to move backwards or out of a terminal state."""


class LegalWorkflowService:
    """
    Priority task queue with a concurrency ceiling.

    Collaborators are injected; use build_workflow_service() to wire the
    production ones from settings.
    """

    def __init__(
        self,
        analysis_client: LegalAnalysisClient,
        heuristics: Optional[List[LegalHeuristic]] = None,
        max_concurrent_tasks: int = DEFAULT_MAX_CONCURRENT_TASKS,
        task_history_limit: int = DEFAULT_TASK_HISTORY_LIMIT,
        citation_extractor: Optional[CitationExtractor] = None,
    ):
        self.analysis_client = analysis_client
        self.heuristics: List[LegalHeuristic] = (
            list(heuristics) if heuristics is not None else get_legal_heuristics()
        )
        self.max_concurrent_tasks = max(1, max_concurrent_tasks)
        self.task_history_limit = max(0, task_history_limit)
        self.citation_extractor = citation_extractor or CitationExtractor()

        self._queue: List[WorkflowTask] = []
        self._active_tasks = 0
        # Running tasks by id, so their history is visible mid-run
        self._active: Dict[str, WorkflowTask] = {}
        self._sequence = itertools.count(1)
        self._finished: "OrderedDict[str, WorkflowTask]" = OrderedDict()

    # =========================================================================
    # Queue
    # =========================================================================

    @property
    def queue_size(self) -> int:
        return len(self._queue)

    @property
    def active_tasks(self) -> int:
        return self._active_tasks

    def register_heuristic(self, heuristic: LegalHeuristic) -> None:
        self.heuristics.append(heuristic)

    def add_task(self, query: LegalQuery) -> str:
        """Enqueue a query and return its task id."""
        task_id = query.task_id or f"LT-{epoch_millis()}-{next(self._sequence)}"
        query = replace(query, task_id=task_id)
        now = utc_now()
        task = WorkflowTask(
            id=task_id,
            query=query,
            priority=query.priority,
            timestamp=now,
            state=WorkflowState.RECEIVE_QUERY,
            case_history=[
                CaseHistoryEntry(timestamp=now, state=WorkflowState.RECEIVE_QUERY, action="Query received")
            ],
        )
        self._queue.append(task)
        self._queue.sort(key=self._sort_key)
        logger.info(
            f"📥 Task {task_id} queued (urgency={query.urgency.value}, priority={query.priority}, "
            f"queue size={len(self._queue)})"
        )
        return task_id

    @staticmethod
    def _sort_key(task: WorkflowTask):
        return (URGENCY_ORDER[task.query.urgency], task.priority, task.query.timestamp)

    def queued_task_ids(self) -> List[str]:
        return [task.id for task in self._queue]

    async def process_next_task(self) -> Optional[LegalResponse]:
        """
        Process the highest-priority queued task.

        Returns None when the queue is empty, the concurrency ceiling is
        reached, or the task failed (see its case history).
        """
        if not self._queue or self._active_tasks >= self.max_concurrent_tasks:
            return None
        task = self._queue.pop(0)
        self._start(task)
        return await self._run(task)

    async def process_all_tasks(self) -> List[TaskOutcome]:
        """
        Start as many queued tasks as there are free slots, in priority
        order, and wait for all of them. One outcome per started task.
        """
        free_slots = self.max_concurrent_tasks - self._active_tasks
        started: List[WorkflowTask] = []
        while self._queue and len(started) < free_slots:
            task = self._queue.pop(0)
            self._start(task)
            started.append(task)

        if not started:
            return []
        logger.info(f"▶️ Processing batch of {len(started)} task(s)")
        responses = await asyncio.gather(*(self._run(task) for task in started))
        return [
            TaskOutcome(task_id=task.id, response=response, error=task.error)
            for task, response in zip(started, responses)
        ]

    def _start(self, task: WorkflowTask) -> None:
        self._active_tasks += 1
        self._active[task.id] = task

    async def _run(self, task: WorkflowTask) -> Optional[LegalResponse]:
        # Caller has already started this task with _start()
        try:
            return await self._process_task(task)
        finally:
            self._active_tasks -= 1
            if self._active.get(task.id) is task:
                del self._active[task.id]
            self._remember(task)

    # =========================================================================
    # State machine
    # =========================================================================

    def _transition(self, task: WorkflowTask, state: WorkflowState, action: str, **metadata: Any) -> None:
        if task.is_finished:
            raise InvalidStateTransition(f"Task {task.id} is already finished ({task.state.value})")
        if state != WorkflowState.ERROR and STATE_ORDER[state] <= STATE_ORDER[task.state]:
            raise InvalidStateTransition(
                f"Task {task.id} cannot move from {task.state.value} to {state.value}"
            )
        task.state = state
        task.case_history.append(
            CaseHistoryEntry(timestamp=utc_now(), state=state, action=action, metadata=metadata)
        )
        logger.debug(f"[Task {task.id}] -> {state.value}: {action}")

    async def _score_heuristics(self, task: WorkflowTask, context: HeuristicContext) -> float:
        if not self.heuristics:
            return 0.0
        results = await asyncio.gather(*(h.evaluate(context) for h in self.heuristics))
        scores = []
        for heuristic, result in zip(self.heuristics, results):
            score = clamp_score(result.score)
            scores.append(score)
            task.heuristic_scores[heuristic.name] = score
            logger.debug(f"[Task {task.id}] {heuristic.name}: {score:.2f} - {result.reason}")
        return sum(scores) / len(scores)

    async def _process_task(self, task: WorkflowTask) -> Optional[LegalResponse]:
        query = task.query
        try:
            context = HeuristicContext(
                query_content=query.content,
                jurisdiction=query.jurisdiction,
                domain=query.domain,
                task_id=task.id,
            )
            task.context = context
            self._transition(
                task, WorkflowState.ANALYZE_JURISDICTION, "Analysis initiated",
                domain=query.domain.value, jurisdiction=query.jurisdiction.value,
            )

            mean_score = await self._score_heuristics(task, context)
            task.risk_score = mean_score
            task.risk_level = risk_level_from_score(mean_score)
            self._transition(
                task, WorkflowState.ASSESS_RISK, "Risk assessed",
                risk_score=round(mean_score, 3), risk_level=task.risk_level.value,
            )

            self._transition(
                task, WorkflowState.RESEARCH_LAW, "Legal research initiated",
                requires_research=query.requires_research,
            )
            analysis = await self.analysis_client.process_legal_query(query)

            if analysis.function_calls:
                self._transition(
                    task, WorkflowState.REVIEW_PRECEDENTS, "Case law results reviewed",
                    function_calls=len(analysis.function_calls),
                    cases_found=len(analysis.case_law_results),
                )

            self._transition(task, WorkflowState.DRAFT_ADVICE, "Drafting legal advice")
            citations = self.citation_extractor.extract(analysis.content)
            recommendations = generate_recommendations(
                analysis.content, task.risk_level, query.jurisdiction, query.domain
            )
            next_steps = generate_next_steps(recommendations, query.jurisdiction, query.deadline)

            if query.billable:
                billing_info = calculate_billing(analysis.processing_time, query.domain, analysis.token_count)
                task.billable_time = billing_info["ai_processing_hours"]
            else:
                billing_info = dict(NON_BILLABLE)

            response = LegalResponse(
                id=str(uuid4()),
                query_id=query.id or task.id,
                task_id=task.id,
                content=analysis.content,
                risk_level=task.risk_level,
                jurisdiction_analysis=analyze_jurisdiction(query.jurisdiction),
                citations=citations,
                recommendations=recommendations,
                next_steps=next_steps,
                processing_time=analysis.processing_time,
                token_count=analysis.token_count,
                model_used=analysis.model,
                billing_info=billing_info,
                confidentiality_notice=generate_confidentiality_notice(query),
                legal_disclaimer=generate_legal_disclaimer(query.jurisdiction),
                created_at=utc_now(),
                function_calls=list(analysis.function_calls),
                case_law_results=list(analysis.case_law_results),
            )

            self._transition(
                task, WorkflowState.FINAL_REVIEW, "Legal analysis completed",
                risk_level=task.risk_level.value,
                model_used=analysis.model,
                processing_time=round(analysis.processing_time, 3),
            )
            logger.info(
                f"✅ Task {task.id} completed (risk={task.risk_level.value}, "
                f"citations={len(citations)}, recommendations={len(recommendations)})"
            )
            return response

        except Exception as e:
            logger.error(f"❌ Task {task.id} failed in {task.state.value}: {e}", exc_info=True)
            task.error = str(e) or e.__class__.__name__
            if not task.is_finished:
                self._transition(
                    task, WorkflowState.ERROR, "Error processing task",
                    error=task.error, failed_state=task.state.value,
                )
            return None

    # =========================================================================
    # Finished tasks
    # =========================================================================

    def _remember(self, task: WorkflowTask) -> None:
        if self.task_history_limit == 0:
            return
        self._finished[task.id] = task
        self._finished.move_to_end(task.id)
        while len(self._finished) > self.task_history_limit:
            self._finished.popitem(last=False)

    def get_task(self, task_id: str) -> Optional[WorkflowTask]:
        """A queued, running or recently finished task."""
        if task_id in self._active:
            return self._active[task_id]
        for task in self._queue:
            if task.id == task_id:
                return task
        return self._finished.get(task_id)

    def get_case_history(self, task_id: str) -> List[CaseHistoryEntry]:
        task = self.get_task(task_id)
        return list(task.case_history) if task else []

    def get_stats(self) -> Dict[str, Any]:
        finished = list(self._finished.values())
        return {
            "queued": len(self._queue),
            "active": self._active_tasks,
            "max_concurrent_tasks": self.max_concurrent_tasks,
            "completed": sum(1 for t in finished if t.state == WorkflowState.FINAL_REVIEW),
            "failed": sum(1 for t in finished if t.state == WorkflowState.ERROR),
            "heuristics": [h.name for h in self.heuristics],
        }


def build_workflow_service(settings: Optional[Settings] = None) -> LegalWorkflowService:
    """Wire a workflow service with the production collaborators."""
    settings = settings or get_settings()
    return LegalWorkflowService(
        analysis_client=LegalAnalysisClient.from_settings(settings),
        heuristics=get_legal_heuristics(),
        max_concurrent_tasks=settings.max_concurrent_tasks,
        task_history_limit=settings.task_history_limit,
    )
