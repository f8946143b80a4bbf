from pydantic import BaseModel, Field

from app.schemas.question import Question, QuizConfig


class AIImage(BaseModel):
    """AI 요청용 이미지 (디코딩된 바이트)"""
    data: bytes = Field(..., description="이미지 바이트")
    mime_type: str = Field(..., description="MIME 타입 (image/*)")


class AIQuizGenerationRequest(BaseModel):
    """AI 문제 생성 요청 스키마 (내부 사용)"""
    images: list[AIImage] = Field(..., min_length=1, description="학습 자료 이미지")
    config: QuizConfig = Field(..., description="퀴즈 생성 설정")
    answer_key: list[int] | None = Field(None, description="정답 위치 시퀀스 (객관식)")
    custom_prompt: str | None = Field(None, description="사용자 지정 프롬프트")
    topic: str | None = Field(None, description="주제 라벨 (복습 퀴즈)")


class ParsedQuizResponse(BaseModel):
    """AI 응답 파싱 결과"""
    title: str | None = None
    questions: list[Question]
    answer_key_sequence: str | None = Field(None, description="AI가 보고한 정답 시퀀스 (예: 'abcd...')")
    dropped_count: int = Field(0, description="검증 실패로 제외된 문제 수")
