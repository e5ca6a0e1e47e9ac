"""Abstract repository interface for prerequisite overrides and waivers."""
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import List, Optional

from eligibility.domain.eligibility.models import PrerequisiteOverride, PrerequisiteWaiver


class ExceptionRepository(ABC):

    @abstractmethod
    def save_override(self, override: PrerequisiteOverride) -> None:
        """Insert or update the override together with its mappings and approval steps."""
        ...

    @abstractmethod
    def get_override(self, override_id: str) -> Optional[PrerequisiteOverride]:
        ...

    @abstractmethod
    def find_overrides(self, student_id: str, course_id: str) -> List[PrerequisiteOverride]:
        """Every override for the pair regardless of status; applicability is decided by the domain."""
        ...

    @abstractmethod
    def save_waiver(self, waiver: PrerequisiteWaiver) -> None:
        ...

    @abstractmethod
    def find_waivers(self, student_id: str, course_id: str) -> List[PrerequisiteWaiver]:
        ...
