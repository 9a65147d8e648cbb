from dataclasses import dataclass
from typing import ClassVar, List

PROBLEM_BASE = "https://trainhub.local/problems"


@dataclass
class DomainError(Exception):
    detail: str
    title: str = "Domain Error"
    type: str = f"{PROBLEM_BASE}/domain-error"
    errors: List[dict] | None = None

    code: ClassVar[str] = "domain_error"

    def __str__(self) -> str:
        return self.detail


@dataclass
class ValidationError(DomainError):
    title: str = "Validation Error"
    type: str = f"{PROBLEM_BASE}/validation-error"

    code: ClassVar[str] = "validation_error"


@dataclass
class ConflictError(DomainError):
    title: str = "Conflict"
    type: str = f"{PROBLEM_BASE}/conflict"

    code: ClassVar[str] = "conflict_error"


@dataclass
class NotFoundError(DomainError):
    title: str = "Not Found"
    type: str = f"{PROBLEM_BASE}/not-found"

    code: ClassVar[str] = "not_found_error"


@dataclass
class AssignmentError(DomainError):
    title: str = "Assignment Failed"
    type: str = f"{PROBLEM_BASE}/assignment-error"

    code: ClassVar[str] = "assignment_error"


@dataclass
class StoreError(DomainError):
    title: str = "Store Error"
    type: str = f"{PROBLEM_BASE}/store-error"

    code: ClassVar[str] = "store_error"
