from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

QuestionType = Literal["MULTIPLE_CHOICE", "TRUE_FALSE", "SHORT_ANSWER", "LONG_ANSWER"]
QuizQuestionType = Literal["MULTIPLE_CHOICE", "TRUE_FALSE", "SHORT_ANSWER", "LONG_ANSWER", "MIXED"]
EducationLevel = Literal["GCSE", "A-LEVEL"]
QuizType = Literal["retrieval", "mini", "assignment", "application", "marks-per-point", "specific"]
ReshufflePolicy = Literal["rebalance", "independent"]

MULTIPLE_CHOICE = "MULTIPLE_CHOICE"
OPTION_COUNT = 4

# 퀴즈 종류별 문항 유형 (retrieval은 객관식 고정)
QUIZ_TYPE_QUESTION_TYPES: dict[str, QuestionType] = {
    "retrieval": "MULTIPLE_CHOICE",
    "mini": "SHORT_ANSWER",
    "assignment": "LONG_ANSWER",
    "application": "SHORT_ANSWER",
    "marks-per-point": "SHORT_ANSWER",
    "specific": "SHORT_ANSWER",
}
# 퀴즈 종류별 고정 문항 수 (retrieval은 주제별 개수를 question_count로 받음)
QUIZ_TYPE_QUESTION_COUNTS: dict[str, dict[str, int]] = {
    "mini": {"GCSE": 19, "A-LEVEL": 24},
    "assignment": {"GCSE": 4, "A-LEVEL": 4},
    "application": {"GCSE": 12, "A-LEVEL": 12},
    "marks-per-point": {"GCSE": 12, "A-LEVEL": 12},
    "specific": {"GCSE": 12, "A-LEVEL": 12},
}


class Question(BaseModel):
    """생성된 문제 스키마 (AI 응답 호환: camelCase 필드명 지원)"""
    text: str = Field(..., min_length=1, description="문제 내용")
    type: QuestionType = Field(..., description="문제 유형")
    options: list[str] | None = Field(None, description="선택지 (객관식은 4개 필수)")
    correct_answer: int | None = Field(None, description="정답 인덱스 (0-3, 객관식만)")
    max_marks: int = Field(1, ge=1, description="배점")
    topic: str | None = Field(None, description="주제 (복습 퀴즈: Topic A/B/C)")
    question_number: int | None = Field(None, ge=1, description="문항 번호")
    mark_scheme: list[str] | None = Field(None, description="채점 기준")

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @field_validator("options")
    @classmethod
    def strip_options(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return v
        return [opt.strip() for opt in v]

    @model_validator(mode="after")
    def check_multiple_choice(self) -> "Question":
        """객관식이면 선택지 4개, 정답 인덱스 0-3"""
        if self.type != MULTIPLE_CHOICE:
            return self
        if not self.options or len(self.options) != OPTION_COUNT:
            count = len(self.options) if self.options else 0
            raise ValueError(f"객관식 문제는 선택지가 {OPTION_COUNT}개여야 합니다 (현재: {count}개)")
        if self.correct_answer is None or not 0 <= self.correct_answer < OPTION_COUNT:
            raise ValueError(f"객관식 정답 인덱스는 0-{OPTION_COUNT - 1} 범위여야 합니다: {self.correct_answer}")
        return self

    @property
    def is_multiple_choice(self) -> bool:
        return self.type == MULTIPLE_CHOICE

    @property
    def correct_option(self) -> str | None:
        if not self.is_multiple_choice:
            return None
        return self.options[self.correct_answer]


class QuizConfig(BaseModel):
    """퀴즈 생성 설정"""
    question_count: int = Field(10, ge=1, le=50, description="문제 개수 (1-50)")
    question_type: QuizQuestionType = Field("MULTIPLE_CHOICE", description="문제 유형")
    education_level: EducationLevel = Field("GCSE", description="교육 과정")
    quiz_type: QuizType | None = Field(None, description="퀴즈 종류 (None이면 일반 생성)")

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @property
    def effective_question_type(self) -> QuizQuestionType:
        """퀴즈 종류가 지정되면 종류별 문항 유형, 아니면 question_type"""
        if self.quiz_type is None:
            return self.question_type
        return QUIZ_TYPE_QUESTION_TYPES[self.quiz_type]

    @property
    def effective_question_count(self) -> int:
        """mini(19/24), assignment(4), 나머지 종류(12)는 고정 문항 수"""
        counts = QUIZ_TYPE_QUESTION_COUNTS.get(self.quiz_type or "")
        if counts is None:
            return self.question_count
        return counts[self.education_level]

    @property
    def expects_multiple_choice(self) -> bool:
        """정답 시퀀스를 미리 만들어야 하는 설정인지 여부"""
        return self.effective_question_type == MULTIPLE_CHOICE


class QuizGenerationRequest(BaseModel):
    """퀴즈 생성 요청 스키마"""
    images: list[str] = Field(..., min_length=1, description="이미지 (data URL, base64)")
    config: QuizConfig = Field(default_factory=QuizConfig)
    custom_prompt: str | None = Field(None, description="사용자 지정 프롬프트")
    reshuffle_policy: ReshufflePolicy | None = Field(None, description="None이면 설정값 사용")

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Quiz(BaseModel):
    """완성된 퀴즈 스키마"""
    title: str | None = None
    questions: list[Question]
    answer_key: list[int] = Field(default_factory=list, description="생성 시 적용한 정답 시퀀스")
    shuffled_answer_key: list[int] = Field(default_factory=list, description="재셔플 후 정답 인덱스")
    reshuffle_policy: ReshufflePolicy = "rebalance"

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @property
    def total_marks(self) -> int:
        return sum(q.max_marks for q in self.questions)
