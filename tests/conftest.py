"""공용 테스트 픽스처"""
import base64
import random

import pytest

from app.core.config import settings
from app.schemas.question import Question
from app.services import ai_service

# PNG 시그니처 + 더미 바이트 (내용은 검사하지 않음)
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


@pytest.fixture(autouse=True)
def reset_gemini_singletons():
    """테스트마다 Gemini 클라이언트/Semaphore 초기화 (이벤트 루프가 테스트마다 다름)"""
    ai_service._gemini_client = None
    ai_service._gemini_semaphore = None
    yield
    ai_service._gemini_client = None
    ai_service._gemini_semaphore = None


@pytest.fixture
def rng():
    """고정 시드 난수 생성기"""
    return random.Random(20240601)


@pytest.fixture
def gemini_key(monkeypatch):
    """테스트용 Gemini API 키"""
    monkeypatch.setattr(settings, "gemini_api_key", "test-key")
    monkeypatch.setattr(settings, "gemini_retry_base_delay", 0.0)
    return "test-key"


@pytest.fixture
def image_data_url():
    """PNG data URL"""
    return "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode("ascii")


def make_mc_question(index: int, correct_answer: int = 0, **kwargs) -> Question:
    """정답이 correct_answer 위치에 있는 객관식 문제"""
    options = [f"Q{index} 오답 {n}" for n in range(3)]
    options.insert(correct_answer, f"Q{index} 정답")
    return Question(
        text=f"문제 {index}",
        type="MULTIPLE_CHOICE",
        options=options,
        correct_answer=correct_answer,
        **kwargs,
    )


@pytest.fixture
def mc_question_factory():
    return make_mc_question


@pytest.fixture
def mc_questions():
    """정답이 모두 0번인 객관식 30문항 (LLM 편향 재현)"""
    return [make_mc_question(i) for i in range(1, 31)]


@pytest.fixture
def png_bytes():
    return PNG_BYTES
