"""커스텀 예외 클래스 정의"""


class BaseAppError(Exception):
    """애플리케이션 기본 예외 클래스"""

    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class GenerationFailure(BaseAppError):
    """정답 위치 시퀀스를 만들 수 없을 때 발생하는 예외 (500)

    길이가 2 미만이거나, 재시도 한도 안에서 유효한 시퀀스를 찾지 못한 경우.
    """

    def __init__(self, message: str, attempts: int = 0):
        self.attempts = attempts
        super().__init__(message, status_code=500)


class AmbiguousOptionsError(BaseAppError):
    """정답 선택지 텍스트가 중복되어 위치를 특정할 수 없을 때 발생하는 예외 (422)"""

    def __init__(self, option_text: str):
        self.option_text = option_text
        super().__init__(f"정답 선택지가 중복되어 위치를 특정할 수 없습니다: {option_text!r}", status_code=422)


class InvalidQuizRequestError(BaseAppError):
    """잘못된 문제 요청일 때 발생하는 예외 (400)"""

    def __init__(self, message: str):
        super().__init__(message, status_code=400)


class QuizParseError(BaseAppError):
    """AI 응답에서 문제를 추출하지 못했을 때 발생하는 예외 (502)"""

    def __init__(self, message: str = "AI 응답에서 유효한 문제를 찾을 수 없습니다"):
        super().__init__(message, status_code=502)


class GeminiServiceUnavailableError(BaseAppError):
    """Gemini API 서비스 일시적 과부하 에러 (503)"""

    def __init__(self, message: str = "Gemini API가 일시적으로 과부하 상태입니다. 잠시 후 다시 시도해주세요."):
        super().__init__(message, status_code=503)


class GeminiAPIKeyError(BaseAppError):
    """Gemini API 키 관련 에러 (403)"""

    def __init__(self, message: str = "Gemini API 키 문제로 문제 생성에 실패했습니다. 관리자에게 문의하세요."):
        super().__init__(message, status_code=403)
