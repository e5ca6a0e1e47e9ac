"""Application service: load → evaluate → persist for one enrollment validation."""
from __future__ import annotations
import logging
from datetime import date
from typing import List, Optional

from eligibility.core import config
from eligibility.domain.common.result import Result
from eligibility.domain.eligibility.enums import ValidationStage
from eligibility.domain.eligibility.models import PrerequisiteValidationResult, StudentRecord
from eligibility.domain.eligibility.service import EligibilityDomainService
from eligibility.persistence.interfaces.circular_dependency_repository import CircularDependencyRepository
from eligibility.persistence.interfaces.exception_repository import ExceptionRepository
from eligibility.persistence.interfaces.rule_repository import RuleRepository
from eligibility.persistence.interfaces.student_record_provider import StudentRecordProvider
from eligibility.persistence.interfaces.validation_result_repository import ValidationResultRepository

logger = logging.getLogger(__name__)


class ValidationAppService:
    def __init__(
        self,
        rules: RuleRepository,
        exceptions: ExceptionRepository,
        results: ValidationResultRepository,
        cycles: CircularDependencyRepository,
        records: StudentRecordProvider,
    ):
        self._rules = rules
        self._exceptions = exceptions
        self._results = results
        self._cycles = cycles
        self._records = records
        self._domain = EligibilityDomainService(engine_version=config.ENGINE_VERSION)

    # ------------------------------------------------------------------
    # VALIDATE
    # ------------------------------------------------------------------
    def validate(
        self, student_id: str, course_id: str, term_id: str, as_of: Optional[date] = None
    ) -> Result[PrerequisiteValidationResult]:
        as_of = as_of or date.today()
        logger.debug("Validation %s/%s/%s: %s", student_id, course_id, term_id, ValidationStage.LOADING.value)

        if self._rules.get_course(course_id) is None:
            return Result.not_found(f"Course '{course_id}' not found.")

        # A student without a record simply has nothing on file
        record = self._records.get_record(student_id) or StudentRecord(student_id=student_id)
        applicable = self._rules.load_applicable_rules(course_id, as_of)
        if applicable.is_empty:
            logger.debug("No rules gate %s on %s", course_id, as_of.isoformat())
        result = self._domain.validate(
            student_id=student_id,
            course_id=course_id,
            term_id=term_id,
            applicable=applicable,
            record=record,
            overrides=self._exceptions.find_overrides(student_id, course_id),
            waivers=self._exceptions.find_waivers(student_id, course_id),
            cycle=self._cycles.get_unresolved_for_course(course_id),
            as_of=as_of,
            known_courses=self._rules.list_course_ids(),
        )

        self._results.save(result)
        logger.debug("Validation %s/%s/%s: %s", student_id, course_id, term_id, ValidationStage.PERSISTED.value)
        logger.info(
            "Validated %s for %s in %s: %s (can_enroll=%s)",
            student_id, course_id, term_id, result.overall_status, result.can_enroll,
        )
        return Result.ok(result)

    # ------------------------------------------------------------------
    # READ
    # ------------------------------------------------------------------
    def get_current(self, student_id: str, course_id: str, term_id: str) -> Optional[PrerequisiteValidationResult]:
        return self._results.get_current(student_id, course_id, term_id)

    def get_history(self, student_id: str, course_id: str, term_id: str) -> List[PrerequisiteValidationResult]:
        return self._results.get_history(student_id, course_id, term_id)

    # ------------------------------------------------------------------
    # STUDENT RECORDS
    # ------------------------------------------------------------------
    def save_student_record(self, record: StudentRecord) -> Result[StudentRecord]:
        if not record.student_id:
            return Result.fail("Student id is required.")
        self._records.save_record(record)
        return Result.ok(record)
