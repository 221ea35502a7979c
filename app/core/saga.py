"""
Ordered multi-step remote writes with optional compensation.

Supabase gives us no transaction across separate table calls, so operations
such as "create group -> add memberships -> set count" run as a list of
(action, compensation) steps. When a required step fails, the completed
steps are unwound in reverse order (if compensation is enabled) and the
original exception is re-raised untouched. Best-effort steps log their
failure and let the saga carry on.
"""
from typing import Any, Callable, Dict, List, Optional
import logging

logger = logging.getLogger(__name__)


class SagaStep:
    def __init__(
        self,
        name: str,
        action: Callable[[Dict[str, Any]], Any],
        compensation: Optional[Callable[[Dict[str, Any]], None]] = None,
        best_effort: bool = False
    ):
        self.name = name
        self.action = action
        self.compensation = compensation
        self.best_effort = best_effort


class Saga:
    def __init__(self, name: str, compensate: bool = True):
        self.name = name
        self.compensate = compensate
        self.steps: List[SagaStep] = []
        self.results: Dict[str, Any] = {}
        self.failures: Dict[str, Exception] = {}

    def step(
        self,
        name: str,
        action: Callable[[Dict[str, Any]], Any],
        compensation: Optional[Callable[[Dict[str, Any]], None]] = None,
        best_effort: bool = False
    ) -> "Saga":
        self.steps.append(SagaStep(name, action, compensation, best_effort))
        return self

    def run(self) -> Dict[str, Any]:
        """Run every step in order. Each action receives the results collected so far."""
        completed: List[SagaStep] = []
        for step in self.steps:
            try:
                self.results[step.name] = step.action(self.results)
            except Exception as e:
                if step.best_effort:
                    logger.error(f"[{self.name}] step '{step.name}' failed, continuing: {e}")
                    self.failures[step.name] = e
                    self.results[step.name] = None
                    continue
                logger.error(f"[{self.name}] step '{step.name}' failed: {e}")
                if self.compensate:
                    self._unwind(completed)
                raise
            completed.append(step)
        return self.results

    def _unwind(self, completed: List[SagaStep]) -> None:
        for step in reversed(completed):
            if step.compensation is None:
                continue
            try:
                step.compensation(self.results)
                logger.info(f"[{self.name}] compensated step '{step.name}'")
            except Exception as e:
                logger.error(f"[{self.name}] compensation for '{step.name}' failed: {e}")
