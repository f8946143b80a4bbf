"""AI 응답 텍스트 → 문제 목록 파싱

무료/경량 비전 모델은 JSON 형식을 자주 어기므로 단계적으로 복구를 시도한다.
1. 마크다운 코드 블록 제거
2. "questions" 를 포함한 최상위 객체 파싱 (실패 시 흔한 문법 오류 수정 후 재시도)
3. 그래도 없으면 "type" 을 가진 개별 문제 객체만 추출해 정규화
"""
import json
import logging
import re
from typing import Any

from pydantic import ValidationError

from app.exceptions import QuizParseError
from app.schemas.ai import ParsedQuizResponse
from app.schemas.question import Question
from app.services.answer_key import POSITION_LETTERS, letters_to_sequence

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)
_QUESTIONS_OBJECT_RE = re.compile(r"\{[\s\S]*\"questions\"[\s\S]*\}")
# 중첩 배열 하나(options)까지 허용하는 평탄한 문제 객체
_QUESTION_OBJECT_RE = re.compile(r"\{[^{}]*\"type\"[^{}]*(?:\[[^\]]*\])?[^{}]*\}")
_TRAILING_COMMA_RE = re.compile(r",(\s*[}\]])")
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")


def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", text).strip()


def repair_json(text: str) -> str:
    """트레일링 콤마, 제어 문자, 줄바꿈 정리"""
    fixed = _TRAILING_COMMA_RE.sub(r"\1", text)
    fixed = fixed.replace("\r", "").replace("\n", " ").replace("\t", " ")
    return _CONTROL_CHARS_RE.sub("", fixed)


def _load_questions_object(content: str) -> dict[str, Any] | None:
    match = _QUESTIONS_OBJECT_RE.search(content)
    if not match:
        return None
    raw = match.group(0)
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning(f"JSON 파싱 실패, 수정 후 재시도: {e} (앞부분: {raw[:200]!r})")
        try:
            data = json.loads(repair_json(raw))
        except json.JSONDecodeError as e2:
            logger.warning(f"수정된 JSON도 파싱 실패: {e2}")
            return None
    if not isinstance(data, dict) or not isinstance(data.get("questions"), list):
        return None
    return data


def coerce_correct_answer(value: Any) -> Any:
    """문자열 정답 표기를 인덱스로 변환: "b" / "B)" → 1, "2" → 2. 해석할 수 없으면 그대로 반환"""
    if not isinstance(value, str):
        return value
    token = value.strip().strip("().").lower()
    if len(token) == 1 and token in POSITION_LETTERS:
        return letters_to_sequence(token)[0]
    if token.isdigit():
        return int(token)
    return value


def normalize_question(raw: dict[str, Any]) -> dict[str, Any]:
    """개별 추출된 문제 객체를 Question 입력 형태로 정규화"""
    correct = coerce_correct_answer(raw.get("correctAnswer", raw.get("correct_answer")))
    if isinstance(correct, str):
        # 해석할 수 없는 정답 표기는 0으로
        correct = 0
    try:
        max_marks = int(raw.get("maxMarks", raw.get("max_marks", 1)))
    except (TypeError, ValueError):
        max_marks = 1

    normalized = {
        "text": raw.get("question") or raw.get("text") or "",
        "type": raw.get("type"),
        "max_marks": max_marks if max_marks >= 1 else 1,
    }
    if raw.get("options"):
        normalized["options"] = raw["options"]
        normalized["correct_answer"] = correct or 0
    return normalized


def _extract_individual_questions(content: str) -> list[dict[str, Any]]:
    matches = _QUESTION_OBJECT_RE.findall(content)
    logger.debug(f"개별 문제 객체 후보: {len(matches)}개")

    items = []
    for index, chunk in enumerate(matches, 1):
        try:
            items.append(normalize_question(json.loads(chunk)))
        except json.JSONDecodeError:
            logger.warning(f"문제 {index} 파싱 실패: {chunk[:120]!r}")
    return items


def _validate_questions(items: list[Any]) -> tuple[list[Question], int]:
    questions = []
    dropped = 0
    for index, item in enumerate(items, 1):
        if not isinstance(item, dict):
            dropped += 1
            continue
        if "text" not in item and "question" in item:
            item = {**item, "text": item["question"]}
        for key in ("correctAnswer", "correct_answer"):
            if isinstance(item.get(key), str):
                item = {**item, key: coerce_correct_answer(item[key])}
        try:
            questions.append(Question.model_validate(item))
        except ValidationError as e:
            dropped += 1
            logger.warning(f"문제 {index} 검증 실패로 제외: {e.errors()[0].get('msg')}")
    return questions, dropped


def parse_questions(raw_text: str) -> ParsedQuizResponse:
    """AI 응답 원문을 ParsedQuizResponse로 변환. 문제가 하나도 없으면 QuizParseError"""
    if not raw_text or not raw_text.strip():
        raise QuizParseError("AI 응답이 비어있습니다")

    content = strip_code_fences(raw_text)
    title = None
    answer_key_sequence = None

    data = _load_questions_object(content) if "\"questions\"" in content else None
    if data is not None:
        items = data["questions"]
        title = data.get("title")
        answer_key_sequence = data.get("answerKeySequence") or data.get("answer_key_sequence")
        logger.debug(f"questions 객체 발견: {len(items)}개")
    else:
        logger.info("questions 객체 없음, 개별 문제 객체 추출 시도")
        items = _extract_individual_questions(content)

    questions, dropped = _validate_questions(items)
    if not questions:
        logger.error(f"유효한 문제 없음. 응답 앞부분: {content[:500]!r}")
        raise QuizParseError()

    logger.info(f"문제 파싱 완료: {len(questions)}개 (제외 {dropped}개)")
    return ParsedQuizResponse(
        title=title if isinstance(title, str) else None,
        questions=questions,
        answer_key_sequence=answer_key_sequence if isinstance(answer_key_sequence, str) else None,
        dropped_count=dropped,
    )
