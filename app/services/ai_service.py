import asyncio
import base64
import binascii
import logging
import random

from google import genai
from google.genai import types
from google.genai.errors import ClientError, ServerError

from app.core.config import settings
from app.exceptions import (
    GeminiAPIKeyError,
    GeminiServiceUnavailableError,
    InvalidQuizRequestError,
    QuizParseError,
)
from app.schemas.ai import AIImage, AIQuizGenerationRequest, ParsedQuizResponse
from app.schemas.question import QuizConfig
from app.services.answer_key import sequence_to_letters
from app.services.response_parser import parse_questions

logger = logging.getLogger(__name__)

_gemini_client: genai.Client | None = None
# 동시 Gemini API 요청 수 제한 (과부하 방지)
_gemini_semaphore: asyncio.Semaphore | None = None

LEVEL_DISPLAY = {"GCSE": "GCSE", "A-LEVEL": "A-Level"}

MINI_AO_SPLIT = {"GCSE": "10 AO1, 6 AO2, 3 AO3", "A-LEVEL": "8 AO1, 10 AO2, 6 AO3"}
# 퀴즈 종류별 출제 지침 (mini는 교육 과정별 AO 배분이라 별도)
QUIZ_TYPE_GUIDANCE = {
    "retrieval": "Within the topic, the first half are AO1 recall questions and the rest AO2 application; "
                 "do not label them.",
    "assignment": "Each question is worth exactly 10 marks; include a markScheme list for every question.",
    "application": "Set every question in a novel context: 3 simple, 5 new-context and 4 multi-step or "
                   "data-based questions.",
    "marks-per-point": "Explanation and description only, no calculations; each question is worth 2, 3 or 4 "
                       "marks with one markScheme point per mark.",
    "specific": "Every question practises the same exam technique; mark values range from 2 to 6.",
}


def get_gemini_client() -> genai.Client:
    """Gemini 클라이언트 싱글톤"""
    global _gemini_client
    if _gemini_client is None:
        if not settings.gemini_api_key:
            raise GeminiAPIKeyError("GEMINI_API_KEY가 설정되지 않았습니다")
        _gemini_client = genai.Client(api_key=settings.gemini_api_key)
    return _gemini_client


def get_gemini_semaphore() -> asyncio.Semaphore:
    """Gemini API 동시 요청 제한 Semaphore 싱글톤"""
    global _gemini_semaphore
    if _gemini_semaphore is None:
        _gemini_semaphore = asyncio.Semaphore(settings.gemini_max_concurrent)
        logger.info(f"Gemini API 동시 요청 제한 설정: 최대 {settings.gemini_max_concurrent}개")
    return _gemini_semaphore


def decode_image(image: str) -> AIImage:
    """data URL(data:image/png;base64,...)을 AIImage로 변환"""
    if not image.startswith("data:") or "," not in image:
        raise InvalidQuizRequestError("이미지는 base64 data URL 형식이어야 합니다")

    header, encoded = image.split(",", 1)
    mime_type = header[len("data:"):].split(";")[0] or "application/octet-stream"
    if not mime_type.startswith("image/"):
        raise InvalidQuizRequestError(f"이미지 파일이 아닙니다: {mime_type}")
    if ";base64" not in header:
        raise InvalidQuizRequestError("base64 인코딩된 이미지만 지원합니다")

    try:
        data = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError):
        raise InvalidQuizRequestError("이미지 base64 디코딩에 실패했습니다")

    if len(data) > settings.max_image_bytes:
        raise InvalidQuizRequestError(
            f"이미지가 너무 큽니다: {len(data) / 1024 / 1024:.2f}MB "
            f"(최대 {settings.max_image_bytes / 1024 / 1024:.0f}MB)"
        )
    return AIImage(data=data, mime_type=mime_type)


def build_prompt(
    config: QuizConfig,
    answer_key: list[int] | None = None,
    topic: str | None = None,
) -> str:
    """문제 생성 프롬프트 (정답 시퀀스 포함)"""
    level = LEVEL_DISPLAY[config.education_level]
    lines = [
        f"Generate {config.effective_question_count} {config.effective_question_type} questions "
        f"for {level} students based on the study material in the image(s).",
    ]
    if config.quiz_type == "mini":
        lines.append(
            f"Split the questions {MINI_AO_SPLIT[config.education_level]} in Bloom's taxonomy order "
            f"(AO1 remember/understand, AO2 apply/analyse, AO3 evaluate/create)."
        )
    elif config.quiz_type:
        lines.append(QUIZ_TYPE_GUIDANCE[config.quiz_type])
    if topic:
        lines.append(f"All questions belong to {topic}; set \"topic\": \"{topic}\" on each question.")
    if answer_key:
        letters = sequence_to_letters(answer_key)
        lines.append(
            f"Answer key sequence: {letters}. Place the correct option of multiple-choice question i "
            f"at the position given by letter i (a=0, b=1, c=2, d=3) and report it as "
            f"\"answerKeySequence\"."
        )
    lines.append(
        "Respond with ONLY valid JSON: {\"title\": str, \"answerKeySequence\": str, \"questions\": "
        "[{\"text\": str, \"type\": str, \"options\": [4 strings], \"correctAnswer\": int, \"maxMarks\": int}]}. "
        "Omit options and correctAnswer for SHORT_ANSWER/LONG_ANSWER. No trailing commas, no markdown."
    )
    return "\n".join(lines)


async def generate_questions_with_gemini(request: AIQuizGenerationRequest) -> ParsedQuizResponse:
    """Gemini 비전 모델로 문제 생성 (재시도 로직 포함, 동시 요청 제한)"""
    client = get_gemini_client()
    semaphore = get_gemini_semaphore()

    prompt = request.custom_prompt or build_prompt(request.config, request.answer_key, request.topic)
    contents: list = [prompt]
    contents.extend(
        types.Part.from_bytes(data=image.data, mime_type=image.mime_type)
        for image in request.images
    )

    max_retries = settings.gemini_max_retries
    base_delay = settings.gemini_retry_base_delay
    max_delay = base_delay * 8  # 2초 기준 최대 16초

    async with semaphore:
        logger.debug(
            f"Gemini API 요청 시작: model={settings.gemini_model}, "
            f"이미지={len(request.images)}개, topic={request.topic}"
        )

        for attempt in range(max_retries):
            try:
                # Gemini SDK는 동기 API이므로 executor에서 실행
                loop = asyncio.get_running_loop()
                response = await loop.run_in_executor(
                    None,
                    lambda: client.models.generate_content(
                        model=settings.gemini_model,
                        contents=contents,
                        config=types.GenerateContentConfig(
                            temperature=settings.gemini_temperature,
                            response_mime_type="application/json",
                        ),
                    ),
                )

                result = response.text
                if not result:
                    raise QuizParseError("AI 응답이 비어있습니다")

                if attempt > 0:
                    logger.info(f"Gemini API 호출 성공 (시도 {attempt + 1}/{max_retries})")

                return parse_questions(result)

            except ClientError as e:
                error_message = str(e).lower()
                if "403" in str(e) or "permission_denied" in error_message or "api_key_invalid" in error_message:
                    logger.error(
                        f"Gemini API 키 문제 감지: status_code=403, "
                        f"error_type={type(e).__name__}"
                    )
                    raise GeminiAPIKeyError()
                logger.error(
                    f"Gemini API ClientError: status_code={getattr(e, 'code', 'unknown')}, "
                    f"error_type={type(e).__name__}"
                )
                raise
            except ServerError as e:
                error_message = str(e)
                if "503" in error_message or "UNAVAILABLE" in error_message or "overloaded" in error_message.lower():
                    if attempt < max_retries - 1:
                        # 지수 백오프 + jitter (±20%)
                        delay = min(base_delay * (2 ** attempt), max_delay)
                        jitter = delay * 0.2 * (random.random() * 2 - 1)
                        delay_with_jitter = max(base_delay / 4, delay + jitter)

                        logger.warning(
                            f"Gemini API 503 에러 발생 (시도 {attempt + 1}/{max_retries}). "
                            f"{delay_with_jitter:.1f}초 후 재시도합니다. (에러: {error_message[:100]})"
                        )
                        await asyncio.sleep(delay_with_jitter)
                        continue
                    logger.error(
                        f"Gemini API 503 에러: 최대 재시도 횟수({max_retries}) 도달. "
                        f"에러 메시지: {error_message}"
                    )
                    raise GeminiServiceUnavailableError()
                logger.error(f"Gemini API ServerError (503 아님): {error_message}")
                raise


async def generate_questions(request: AIQuizGenerationRequest) -> ParsedQuizResponse:
    """AI를 사용하여 문제 생성 (Gemini 사용)"""
    if not settings.gemini_api_key:
        raise GeminiAPIKeyError("GEMINI_API_KEY가 설정되지 않았습니다")
    return await generate_questions_with_gemini(request)
