"""Abstract repository interface for courses and their gating rules."""
from __future__ import annotations
from abc import ABC, abstractmethod
from datetime import date
from typing import Dict, Optional, Set

from eligibility.domain.eligibility.models import (
    ApplicableRules,
    CorequisiteRule,
    Course,
    EnrollmentRestriction,
    PrerequisiteRequirement,
    PrerequisiteRule,
)


class RuleRepository(ABC):

    @abstractmethod
    def load_applicable_rules(self, course_id: str, as_of: date) -> ApplicableRules:
        """Active rules effective on `as_of`, ordered by priority then id. Empty is valid."""
        ...

    @abstractmethod
    def save_course(self, course: Course) -> None:
        ...

    @abstractmethod
    def get_course(self, course_id: str) -> Optional[Course]:
        ...

    @abstractmethod
    def list_course_ids(self) -> Set[str]:
        ...

    @abstractmethod
    def save_prerequisite_rule(self, rule: PrerequisiteRule) -> None:
        """Insert or update the rule row and replace its requirements."""
        ...

    @abstractmethod
    def get_prerequisite_rule(self, rule_id: str) -> Optional[PrerequisiteRule]:
        ...

    @abstractmethod
    def add_requirement(self, requirement: PrerequisiteRequirement) -> None:
        ...

    @abstractmethod
    def save_corequisite_rule(self, rule: CorequisiteRule) -> None:
        ...

    @abstractmethod
    def save_restriction(self, restriction: EnrollmentRestriction) -> None:
        ...

    @abstractmethod
    def load_prerequisite_graph(self) -> Dict[str, Set[str]]:
        """course_id -> courses it requires, over every active prerequisite rule."""
        ...
