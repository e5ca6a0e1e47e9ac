"""Abstract repository interface for circular dependency detection results."""
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import List, Optional

from eligibility.domain.eligibility.models import CircularDependencyResult


class CircularDependencyRepository(ABC):

    @abstractmethod
    def save(self, result: CircularDependencyResult) -> None:
        """Insert or update a detection result."""
        ...

    @abstractmethod
    def get_by_id(self, result_id: str) -> Optional[CircularDependencyResult]:
        ...

    @abstractmethod
    def get_unresolved_for_course(self, course_id: str) -> Optional[CircularDependencyResult]:
        """The oldest detected cycle for the course not yet resolved by an administrator."""
        ...

    @abstractmethod
    def list_unresolved(self) -> List[CircularDependencyResult]:
        ...
