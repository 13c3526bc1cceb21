"""커스텀 예외 클래스 정의"""


class BaseAppError(Exception):
    """애플리케이션 기본 예외 클래스"""

    code = "internal_error"

    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class MissingCredentialsError(BaseAppError):
    """요청자 식별 정보가 없거나 잘못된 경우 (401)"""

    code = "unauthenticated"

    def __init__(self, message: str = "요청자 정보(X-User-Id, X-User-Role)가 필요합니다"):
        super().__init__(message, status_code=401)


class RoleNotAllowedError(BaseAppError):
    """역할 권한이 없는 요청 (403)"""

    code = "forbidden"

    def __init__(self, role: str):
        super().__init__(f"이 작업을 수행할 권한이 없습니다: role={role}", status_code=403)


class CourseNotFoundError(BaseAppError):
    """과목을 찾을 수 없을 때 발생하는 예외 (404)"""

    code = "course_not_found"

    def __init__(self, course_id: int):
        super().__init__(f"과목을 찾을 수 없습니다: {course_id}", status_code=404)


class QuizNotFoundError(BaseAppError):
    """퀴즈를 찾을 수 없거나 비활성화된 경우 (404)"""

    code = "quiz_not_found"

    def __init__(self, quiz_id: int):
        super().__init__(f"퀴즈를 찾을 수 없습니다: {quiz_id}", status_code=404)


class QuizNotStartedError(BaseAppError):
    """퀴즈 응시 가능 시간 이전 (409)"""

    code = "quiz_not_started"

    def __init__(self, quiz_id: int):
        super().__init__(f"아직 시작되지 않은 퀴즈입니다: {quiz_id}", status_code=409)


class QuizEndedError(BaseAppError):
    """퀴즈 응시 가능 시간 종료 (409)"""

    code = "quiz_ended"

    def __init__(self, quiz_id: int):
        super().__init__(f"종료된 퀴즈입니다: {quiz_id}", status_code=409)


class AttemptLimitReachedError(BaseAppError):
    """최대 응시 횟수 초과 (409)"""

    code = "attempt_limit_reached"

    def __init__(self, quiz_id: int, max_attempts: int):
        super().__init__(
            f"최대 응시 횟수({max_attempts}회)에 도달했습니다: quiz_id={quiz_id}",
            status_code=409,
        )


class AttemptNotFoundError(BaseAppError):
    """응시 기록을 찾을 수 없을 때 발생하는 예외 (404)"""

    code = "attempt_not_found"

    def __init__(self, attempt_id: int):
        super().__init__(f"응시 기록을 찾을 수 없습니다: {attempt_id}", status_code=404)


class AttemptAlreadySubmittedError(BaseAppError):
    """이미 완료(제출 또는 만료)된 응시 (409)"""

    code = "attempt_already_submitted"

    def __init__(self, attempt_id: int):
        super().__init__(f"이미 제출된 응시입니다: {attempt_id}", status_code=409)


class AttemptExpiredError(BaseAppError):
    """제한 시간이 지난 응시 (410)"""

    code = "attempt_expired"

    def __init__(self, attempt_id: int):
        super().__init__(f"응시 제한 시간이 지났습니다: {attempt_id}", status_code=410)


class ResultAccessForbiddenError(BaseAppError):
    """응시 결과 조회 권한 없음 (403)"""

    code = "forbidden"

    def __init__(self, attempt_id: int):
        super().__init__(f"응시 결과를 조회할 권한이 없습니다: {attempt_id}", status_code=403)


class InvalidAnswerPayloadError(BaseAppError):
    """잘못된 답안 제출 (400)"""

    code = "validation_error"

    def __init__(self, message: str):
        super().__init__(message, status_code=400)


class InvalidQuizRequestError(BaseAppError):
    """잘못된 퀴즈 생성/수정 요청 (400)"""

    code = "validation_error"

    def __init__(self, message: str):
        super().__init__(message, status_code=400)


class AttemptConflictError(BaseAppError):
    """동시 요청 충돌로 응시를 시작하지 못한 경우 (409, 재시도 가능)"""

    code = "attempt_conflict"

    def __init__(self, quiz_id: int):
        super().__init__(f"동시 요청으로 응시를 시작하지 못했습니다. 다시 시도해주세요: quiz_id={quiz_id}", status_code=409)
