"""Abstract source of student academic records."""
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Optional

from eligibility.domain.eligibility.models import StudentRecord


class StudentRecordProvider(ABC):

    @abstractmethod
    def get_record(self, student_id: str) -> Optional[StudentRecord]:
        ...

    @abstractmethod
    def save_record(self, record: StudentRecord) -> None:
        """Replace the stored snapshot for the student."""
        ...
