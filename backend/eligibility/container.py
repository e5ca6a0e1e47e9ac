"""Dependency injection container: wires implementations to interfaces."""
from __future__ import annotations
from functools import lru_cache

from eligibility.application.override_app_service import OverrideAppService
from eligibility.application.rule_app_service import RuleAppService
from eligibility.application.validation_app_service import ValidationAppService
from eligibility.persistence.repositories.sqlite.sqlite_circular_dependency_repository import (
    SqliteCircularDependencyRepository,
)
from eligibility.persistence.repositories.sqlite.sqlite_exception_repository import SqliteExceptionRepository
from eligibility.persistence.repositories.sqlite.sqlite_rule_repository import SqliteRuleRepository
from eligibility.persistence.repositories.sqlite.sqlite_student_record_provider import SqliteStudentRecordProvider
from eligibility.persistence.repositories.sqlite.sqlite_validation_result_repository import (
    SqliteValidationResultRepository,
)


@lru_cache(maxsize=1)
def get_rule_repo() -> SqliteRuleRepository:
    return SqliteRuleRepository()


@lru_cache(maxsize=1)
def get_exception_repo() -> SqliteExceptionRepository:
    return SqliteExceptionRepository()


@lru_cache(maxsize=1)
def get_validation_result_repo() -> SqliteValidationResultRepository:
    return SqliteValidationResultRepository()


@lru_cache(maxsize=1)
def get_circular_dependency_repo() -> SqliteCircularDependencyRepository:
    return SqliteCircularDependencyRepository()


@lru_cache(maxsize=1)
def get_student_record_provider() -> SqliteStudentRecordProvider:
    return SqliteStudentRecordProvider()


@lru_cache(maxsize=1)
def get_validation_app_service() -> ValidationAppService:
    return ValidationAppService(
        rules=get_rule_repo(),
        exceptions=get_exception_repo(),
        results=get_validation_result_repo(),
        cycles=get_circular_dependency_repo(),
        records=get_student_record_provider(),
    )


@lru_cache(maxsize=1)
def get_rule_app_service() -> RuleAppService:
    return RuleAppService(rules=get_rule_repo(), cycle_results=get_circular_dependency_repo())


@lru_cache(maxsize=1)
def get_override_app_service() -> OverrideAppService:
    return OverrideAppService(exceptions=get_exception_repo())


def clear_caches() -> None:
    for factory in (
        get_rule_repo,
        get_exception_repo,
        get_validation_result_repo,
        get_circular_dependency_repo,
        get_student_record_provider,
        get_validation_app_service,
        get_rule_app_service,
        get_override_app_service,
    ):
        factory.cache_clear()
