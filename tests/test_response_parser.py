"""AI 응답 파서 테스트"""
import json

import pytest

from app.exceptions import QuizParseError
from app.services.response_parser import (
    coerce_correct_answer,
    normalize_question,
    parse_questions,
    repair_json,
    strip_code_fences,
)


def _mc(text, options, correct=0):
    return {"text": text, "type": "MULTIPLE_CHOICE", "options": options, "correctAnswer": correct, "maxMarks": 1}


def test_parse_questions_object():
    """정상 JSON"""
    payload = {
        "title": "Retrieval Quiz - Cells",
        "answerKeySequence": "ab",
        "questions": [
            _mc("세포 분열의 종류는?", ["Meiosis", "Mitosis", "Binary fission", "Budding"], 1),
            {"text": "미토콘드리아의 역할을 설명하시오", "type": "SHORT_ANSWER", "maxMarks": 3},
        ],
    }

    parsed = parse_questions(json.dumps(payload, ensure_ascii=False))

    assert parsed.title == "Retrieval Quiz - Cells"
    assert parsed.answer_key_sequence == "ab"
    assert len(parsed.questions) == 2
    assert parsed.questions[0].correct_answer == 1
    assert parsed.questions[0].correct_option == "Mitosis"
    assert parsed.questions[1].max_marks == 3
    assert parsed.questions[1].options is None
    assert parsed.dropped_count == 0


def test_parse_questions_strips_code_fences_and_prose():
    """마크다운 코드 블록과 앞뒤 설명 문장 제거"""
    body = json.dumps({"questions": [_mc("Q", ["a", "b", "c", "d"])]})
    raw = f"Here is your quiz:\n```json\n{body}\n```\nGood luck!"

    parsed = parse_questions(raw)

    assert len(parsed.questions) == 1
    assert parsed.questions[0].text == "Q"


def test_parse_questions_repairs_trailing_commas():
    """트레일링 콤마 수정 후 파싱"""
    raw = '{"questions": [{"text": "Q1", "type": "MULTIPLE_CHOICE", "options": ["a", "b", "c", "d",], "correctAnswer": 2,},]}'

    parsed = parse_questions(raw)

    assert parsed.questions[0].correct_answer == 2


def test_parse_questions_individual_objects():
    """questions 객체 없이 개별 문제 객체만 나열된 응답"""
    raw = (
        '1. {"question": "DNA의 기본 단위는?", "type": "MULTIPLE_CHOICE", '
        '"options": ["Nucleotide", "Amino acid", "Glucose", "Lipid"], "correctAnswer": "a", "maxMarks": "2"}\n'
        '2. {"question": "효소를 설명하시오", "type": "SHORT_ANSWER", "maxMarks": "x"}'
    )

    parsed = parse_questions(raw)

    assert len(parsed.questions) == 2
    first, second = parsed.questions
    assert first.text == "DNA의 기본 단위는?"
    assert first.correct_answer == 0
    assert first.max_marks == 2
    assert second.type == "SHORT_ANSWER"
    assert second.max_marks == 1


def test_parse_questions_object_letter_answer():
    """questions 객체 안의 문자 정답("b")도 인덱스로 변환해 유지"""
    payload = {
        "questions": [
            _mc("광합성 산물은?", ["Oxygen", "Glucose", "Nitrogen", "Water"], "b"),
            _mc("호흡 장소는?", ["Nucleus", "Mitochondria", "Ribosome", "Vacuole"], 1),
            _mc("세포벽 성분은?", ["Chitin", "Starch", "Lipid", "Cellulose"], "D)"),
        ]
    }

    parsed = parse_questions(json.dumps(payload))

    assert parsed.dropped_count == 0
    assert [q.correct_answer for q in parsed.questions] == [1, 1, 3]
    assert [q.correct_option for q in parsed.questions] == ["Glucose", "Mitochondria", "Cellulose"]


def test_parse_questions_individual_letter_answer():
    """개별 객체 경로도 문자 정답을 같은 인덱스로 변환 (0으로 덮어쓰지 않음)"""
    raw = (
        '{"question": "광합성 산물은?", "type": "MULTIPLE_CHOICE", '
        '"options": ["Oxygen", "Glucose", "Nitrogen", "Water"], "correctAnswer": "B"}\n'
        '{"question": "호흡 장소는?", "type": "MULTIPLE_CHOICE", '
        '"options": ["Nucleus", "Mitochondria", "Ribosome", "Vacuole"], "correctAnswer": "1"}'
    )

    parsed = parse_questions(raw)

    assert [q.correct_option for q in parsed.questions] == ["Glucose", "Mitochondria"]


@pytest.mark.parametrize(
    "value, expected",
    [("a", 0), (" c ", 2), ("B)", 1), ("(d)", 3), ("2", 2), (3, 3), (None, None), ("Glucose", "Glucose")],
)
def test_coerce_correct_answer(value, expected):
    assert coerce_correct_answer(value) == expected


def test_normalize_question_unreadable_answer():
    """해석할 수 없는 정답 표기는 0"""
    normalized = normalize_question(
        {"question": "Q", "type": "MULTIPLE_CHOICE", "options": ["w", "x", "y", "z"], "correctAnswer": "Glucose"}
    )

    assert normalized["correct_answer"] == 0


def test_parse_questions_drops_invalid_multiple_choice():
    """선택지가 4개가 아닌 객관식은 제외"""
    payload = {
        "questions": [
            _mc("OK", ["a", "b", "c", "d"]),
            _mc("3지선다", ["a", "b", "c"]),
            _mc("범위 밖 정답", ["a", "b", "c", "d"], 5),
            "not a question",
        ]
    }

    parsed = parse_questions(json.dumps(payload))

    assert [q.text for q in parsed.questions] == ["OK"]
    assert parsed.dropped_count == 3


def test_parse_questions_accepts_question_key():
    """text 대신 question 키"""
    payload = {"questions": [{"question": "Q", "type": "LONG_ANSWER", "maxMarks": 10, "markScheme": ["p1", "p2"]}]}

    parsed = parse_questions(json.dumps(payload))

    assert parsed.questions[0].text == "Q"
    assert parsed.questions[0].mark_scheme == ["p1", "p2"]


@pytest.mark.parametrize("raw", ["", "   ", "I cannot help with that.", '{"questions": []}'])
def test_parse_questions_nothing_usable(raw):
    """유효한 문제가 없으면 QuizParseError"""
    with pytest.raises(QuizParseError) as exc_info:
        parse_questions(raw)

    assert exc_info.value.status_code == 502


def test_helpers():
    assert strip_code_fences("```json\n{}\n```") == "{}"
    assert repair_json('{"a": [1, 2,], }') == '{"a": [1, 2] }'
    normalized = normalize_question({"text": "Q", "type": "TRUE_FALSE", "maxMarks": 0})
    assert normalized == {"text": "Q", "type": "TRUE_FALSE", "max_marks": 1}
