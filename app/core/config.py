from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """애플리케이션 설정 (환경변수 / .env)"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    environment: Literal["development", "production", "test"] = "development"

    # Gemini
    gemini_api_key: str | None = None
    gemini_model: str = "gemini-2.5-flash"
    gemini_max_concurrent: int = Field(2, ge=1)
    gemini_max_retries: int = Field(5, ge=1)
    gemini_temperature: float = 0.7
    gemini_retry_base_delay: float = Field(2.0, ge=0, description="503 재시도 초기 대기 시간(초)")

    # 정답 배치
    answer_key_max_attempts: int = Field(50, ge=1, description="정답 시퀀스 생성 최대 재시도 횟수")
    reshuffle_policy: Literal["rebalance", "independent"] = "rebalance"

    # 복습 퀴즈 (3개 주제)
    retrieval_topic_count: int = 3
    retrieval_questions_per_topic: int = 10

    # 로그 디렉터리 (프로덕션 파일 로그)
    log_dir: str = "/app/logs"

    # 업로드 이미지 (10MB 제한)
    max_image_bytes: int = 10 * 1024 * 1024


settings = Settings()
