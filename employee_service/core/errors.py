"""
직원 서비스 도메인 예외.

서비스 계층은 HTTP를 모른다. 실패는 kind 태그를 가진 예외로만 올려보내고,
상태 코드와 응답 envelope는 api 계층(api/employees.py)에서 결정한다.
"""


class EmployeeServiceError(Exception):
    kind = "error"
    default_message = "Employee service error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidArgument(EmployeeServiceError):
    """잘못된 입력 (숫자가 아닌 age, 비어 있는 name 등). 입력을 고치기 전엔 재시도 무의미."""
    kind = "invalid_argument"
    default_message = "Invalid argument"


class InvalidIdentifier(InvalidArgument):
    kind = "invalid_identifier"
    default_message = "Invalid UUID format for employee ID"


class NotFound(EmployeeServiceError):
    kind = "not_found"
    default_message = "Employee not found"


class DuplicateEmail(EmployeeServiceError):
    """같은 email의 직원이 이미 있음 (conflict)."""
    kind = "duplicate_email"
    default_message = "Employee with this email already exists"


class StaleVersion(EmployeeServiceError):
    """
    낙관적 락 실패 (conflict).
    호출 측은 현재 상태를 다시 조회한 뒤 새 updated_at으로 재시도할 수 있다.
    """
    kind = "stale_version"
    default_message = "Data has changed, please reload and try again."


class PersistenceFailure(EmployeeServiceError):
    kind = "persistence_failure"
    default_message = "Internal database error"
