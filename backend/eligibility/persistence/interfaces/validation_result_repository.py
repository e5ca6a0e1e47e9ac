"""Abstract repository interface for persisted validation results."""
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import List, Optional

from eligibility.domain.eligibility.models import PrerequisiteValidationResult


class ValidationResultRepository(ABC):

    @abstractmethod
    def save(self, result: PrerequisiteValidationResult) -> None:
        """Append a new result with its check-result rows; never update an earlier one."""
        ...

    @abstractmethod
    def get_current(self, student_id: str, course_id: str, term_id: str) -> Optional[PrerequisiteValidationResult]:
        """The most recently written result for the key, or None."""
        ...

    @abstractmethod
    def get_history(self, student_id: str, course_id: str, term_id: str) -> List[PrerequisiteValidationResult]:
        """All results for the key, newest first; only the first has is_current=True."""
        ...
