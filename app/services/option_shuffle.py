"""선택지 셔플 및 정답 위치 재배치"""
import logging
import random

from app.exceptions import AmbiguousOptionsError, InvalidQuizRequestError
from app.schemas.question import OPTION_COUNT, Question, ReshufflePolicy
from app.services.answer_key import (
    generate_balanced_sequence,
    has_adjacent_repeat,
    sequence_to_letters,
)

logger = logging.getLogger(__name__)


def _check_options(options: list[str], correct_index: int) -> None:
    if len(options) != OPTION_COUNT:
        raise InvalidQuizRequestError(f"선택지는 {OPTION_COUNT}개여야 합니다 (현재: {len(options)}개)")
    if not 0 <= correct_index < OPTION_COUNT:
        raise InvalidQuizRequestError(f"정답 인덱스는 0-{OPTION_COUNT - 1} 범위여야 합니다: {correct_index}")


def shuffle_options(
    options: list[str],
    correct_index: int,
    *,
    rng: random.Random | None = None,
) -> tuple[list[str], int]:
    """선택지를 무작위로 섞고 정답의 새 인덱스를 반환

    정답은 텍스트로 다시 찾기 때문에 정답 텍스트가 중복되면 AmbiguousOptionsError.
    (오답끼리의 중복은 허용)
    """
    _check_options(options, correct_index)
    correct_option = options[correct_index]
    if options.count(correct_option) > 1:
        raise AmbiguousOptionsError(correct_option)

    rng = rng or random.Random()
    shuffled = list(options)
    rng.shuffle(shuffled)
    return shuffled, shuffled.index(correct_option)


def place_correct_option(
    options: list[str],
    correct_index: int,
    target_index: int,
) -> list[str]:
    """정답 선택지를 target_index 위치로 옮긴 새 리스트 (두 칸 맞교환)"""
    _check_options(options, correct_index)
    if not 0 <= target_index < OPTION_COUNT:
        raise InvalidQuizRequestError(f"목표 인덱스는 0-{OPTION_COUNT - 1} 범위여야 합니다: {target_index}")

    placed = list(options)
    placed[correct_index], placed[target_index] = placed[target_index], placed[correct_index]
    return placed


def correct_answer_sequence(questions: list[Question]) -> list[int]:
    """객관식 문제의 정답 인덱스 목록 (문항 순서대로)"""
    return [q.correct_answer for q in questions if q.is_multiple_choice]


def apply_answer_key(questions: list[Question], sequence: list[int]) -> list[Question]:
    """정답 시퀀스대로 각 객관식 문제의 정답을 옮긴 새 문제 목록

    객관식이 아닌 문제는 그대로 두고 시퀀스 위치도 소비하지 않는다.
    """
    mc_count = sum(1 for q in questions if q.is_multiple_choice)
    if mc_count != len(sequence):
        raise InvalidQuizRequestError(
            f"정답 시퀀스 길이({len(sequence)})와 객관식 문제 수({mc_count})가 다릅니다"
        )

    positions = iter(sequence)
    result = []
    for question in questions:
        if not question.is_multiple_choice:
            result.append(question)
            continue
        target = next(positions)
        result.append(
            question.model_copy(
                update={
                    "options": place_correct_option(question.options, question.correct_answer, target),
                    "correct_answer": target,
                }
            )
        )
    return result


def reshuffle_questions(
    questions: list[Question],
    policy: ReshufflePolicy = "rebalance",
    *,
    rng: random.Random | None = None,
) -> list[Question]:
    """생성 이후 선택지 재셔플

    - independent: 문제별로 독립 셔플. 연속 중복 없음/균형 분포는 보장되지 않는다.
    - rebalance: 독립 셔플 후 새 균형 시퀀스를 만들어 정답을 그 위치로 옮긴다.
    """
    if policy not in ("rebalance", "independent"):
        raise InvalidQuizRequestError(f"알 수 없는 재셔플 정책입니다: {policy}")
    rng = rng or random.Random()

    shuffled = []
    for question in questions:
        if not question.is_multiple_choice:
            shuffled.append(question)
            continue
        new_options, new_index = shuffle_options(question.options, question.correct_answer, rng=rng)
        shuffled.append(question.model_copy(update={"options": new_options, "correct_answer": new_index}))

    if policy == "independent":
        result_key = correct_answer_sequence(shuffled)
        if has_adjacent_repeat(result_key):
            logger.debug(f"독립 셔플 결과 연속 중복 정답 존재: {sequence_to_letters(result_key)}")
        return shuffled

    mc_count = sum(1 for q in shuffled if q.is_multiple_choice)
    if mc_count < 2:
        # 객관식이 1개 이하면 시퀀스 제약이 의미 없음
        return shuffled

    fresh_key = generate_balanced_sequence(mc_count, rng=rng)
    return apply_answer_key(shuffled, fresh_key)
