import asyncio
import logging
import random
from datetime import date

from app.core.config import settings
from app.exceptions import InvalidQuizRequestError, QuizParseError
from app.schemas.ai import AIQuizGenerationRequest
from app.schemas.question import (
    EducationLevel,
    Question,
    Quiz,
    QuizConfig,
    QuizGenerationRequest,
    ReshufflePolicy,
)
from app.services import ai_service
from app.services.answer_key import (
    generate_balanced_sequence,
    letters_to_sequence,
    sequence_to_letters,
)
from app.services.option_shuffle import (
    apply_answer_key,
    correct_answer_sequence,
    reshuffle_questions,
)

logger = logging.getLogger(__name__)


def _plan_answer_key(question_count: int, rng: random.Random) -> list[int] | None:
    """객관식 문제 수만큼 정답 시퀀스를 미리 생성 (2문항 미만이면 None)"""
    if question_count < 2:
        return None
    answer_key = generate_balanced_sequence(question_count, rng=rng)
    logger.info(f"정답 시퀀스 생성: {sequence_to_letters(answer_key)} ({question_count}문항)")
    return answer_key


def check_reported_key(planned_key: list[int], reported_key: str | None, label: str = "") -> bool:
    """AI가 응답에 보고한 정답 시퀀스가 요청한 시퀀스와 같은지 확인

    불일치는 경고만 남긴다. 정답 배치는 생성 후 apply_answer_key로 강제되므로 결과 퀴즈에는 영향이 없다.
    보고가 없으면 True.
    """
    if not reported_key:
        return True
    prefix = f"{label} " if label else ""
    try:
        reported = letters_to_sequence(reported_key)
    except InvalidQuizRequestError as e:
        logger.warning(f"{prefix}AI 보고 정답 시퀀스 해석 실패: {e.message}")
        return False

    if reported != planned_key:
        logger.warning(
            f"{prefix}AI 보고 정답 시퀀스 불일치: 요청={sequence_to_letters(planned_key)}, "
            f"보고={sequence_to_letters(reported)}"
        )
        return False
    logger.debug(f"{prefix}AI가 요청한 정답 시퀀스를 따름")
    return True


def finalize_quiz(
    title: str | None,
    questions: list[Question],
    planned_key: list[int] | None,
    policy: ReshufflePolicy,
    rng: random.Random,
) -> Quiz:
    """생성된 문제에 정답 시퀀스를 적용하고 재셔플하여 Quiz 완성

    AI가 요청과 다른 개수의 객관식 문제를 돌려주면 실제 개수로 시퀀스를 다시 만든다.
    """
    mc_count = sum(1 for q in questions if q.is_multiple_choice)

    if mc_count >= 2:
        answer_key = planned_key
        if answer_key is None or len(answer_key) != mc_count:
            if answer_key is not None:
                logger.warning(
                    f"객관식 문제 수 불일치: 요청 시퀀스={len(answer_key)}, 실제={mc_count} → 시퀀스 재생성"
                )
            answer_key = generate_balanced_sequence(mc_count, rng=rng)
        questions = apply_answer_key(questions, answer_key)
    else:
        answer_key = correct_answer_sequence(questions)

    shuffled = reshuffle_questions(questions, policy, rng=rng)
    shuffled_key = correct_answer_sequence(shuffled)

    logger.info(
        f"퀴즈 생성 완료: 문제={len(shuffled)}개, 객관식={mc_count}개, 정책={policy}, "
        f"원래 정답={sequence_to_letters(answer_key)}, 셔플 후 정답={sequence_to_letters(shuffled_key)}"
    )
    return Quiz(
        title=title,
        questions=shuffled,
        answer_key=answer_key,
        shuffled_answer_key=shuffled_key,
        reshuffle_policy=policy,
    )


async def generate_quiz(
    request: QuizGenerationRequest,
    *,
    rng: random.Random | None = None,
) -> Quiz:
    """이미지 기반 퀴즈 생성 (단일 AI 호출)"""
    rng = rng or random.Random()
    config = request.config
    policy = request.reshuffle_policy or settings.reshuffle_policy

    images = [ai_service.decode_image(image) for image in request.images]
    logger.info(
        f"퀴즈 생성 요청: count={config.effective_question_count}, type={config.effective_question_type}, "
        f"level={config.education_level}, quiz_type={config.quiz_type}, 이미지={len(images)}개, "
        f"custom_prompt={request.custom_prompt is not None}"
    )

    answer_key = None
    if config.expects_multiple_choice:
        answer_key = _plan_answer_key(config.effective_question_count, rng)

    ai_request = AIQuizGenerationRequest(
        images=images,
        config=config,
        answer_key=answer_key,
        custom_prompt=request.custom_prompt,
    )
    parsed = await ai_service.generate_questions(ai_request)
    if parsed.dropped_count:
        logger.warning(f"검증 실패로 제외된 문제: {parsed.dropped_count}개")
    if answer_key:
        check_reported_key(answer_key, parsed.answer_key_sequence)

    return finalize_quiz(parsed.title, parsed.questions, answer_key, policy, rng)


def _topic_label(index: int) -> str:
    return f"Topic {chr(ord('A') + index)}"


async def generate_retrieval_quiz(
    images: list[str],
    education_level: EducationLevel = "GCSE",
    *,
    reshuffle_policy: ReshufflePolicy | None = None,
    rng: random.Random | None = None,
) -> Quiz:
    """복습 퀴즈 생성: 이미지 1장당 주제 1개, 주제별 객관식 10문항을 병렬 생성

    전체 문항(기본 30개)에 하나의 균형 시퀀스를 적용한 뒤 재셔플한다.
    """
    topic_count = settings.retrieval_topic_count
    if len(images) != topic_count:
        raise InvalidQuizRequestError(
            f"복습 퀴즈는 이미지가 정확히 {topic_count}장 필요합니다 (현재: {len(images)}장)"
        )

    rng = rng or random.Random()
    policy = reshuffle_policy or settings.reshuffle_policy
    per_topic = settings.retrieval_questions_per_topic

    decoded = [ai_service.decode_image(image) for image in images]
    answer_key = _plan_answer_key(per_topic * topic_count, rng)
    config = QuizConfig(
        question_count=per_topic,
        question_type="MULTIPLE_CHOICE",
        education_level=education_level,
        quiz_type="retrieval",
    )

    requests = []
    for index, image in enumerate(decoded):
        topic_key = answer_key[index * per_topic:(index + 1) * per_topic] if answer_key else None
        requests.append(
            AIQuizGenerationRequest(
                images=[image],
                config=config,
                answer_key=topic_key,
                topic=_topic_label(index),
            )
        )

    logger.info(f"복습 퀴즈 주제별 병렬 생성 시작: 주제={topic_count}개, 주제당={per_topic}문항")
    results = await asyncio.gather(*(ai_service.generate_questions(r) for r in requests))

    questions: list[Question] = []
    for index, parsed in enumerate(results):
        topic = _topic_label(index)
        if requests[index].answer_key:
            check_reported_key(requests[index].answer_key, parsed.answer_key_sequence, label=topic)
        mc_questions = [q for q in parsed.questions if q.is_multiple_choice]
        if len(mc_questions) != per_topic:
            logger.warning(f"{topic} 객관식 문항 수 불일치: 요청={per_topic}, 실제={len(mc_questions)}")
        questions.extend(q.model_copy(update={"topic": topic}) for q in mc_questions[:per_topic])

    if not questions:
        raise QuizParseError("복습 퀴즈에 사용할 객관식 문제가 없습니다")

    numbered = [
        q.model_copy(update={"question_number": number})
        for number, q in enumerate(questions, 1)
    ]
    title = f"Retrieval Quiz - {date.today():%d %B %Y}"
    return finalize_quiz(title, numbered, answer_key, policy, rng)
