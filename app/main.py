"""퀴즈 생성 실행 진입점

로깅을 설정한 뒤 이미지 파일로 퀴즈를 생성해 JSON으로 출력한다.
    python -m app.main page1.png page2.png --count 12
    python -m app.main a.png b.png c.png --quiz-type retrieval --level A-LEVEL
"""
import argparse
import asyncio
import base64
import logging
import mimetypes
import sys
from pathlib import Path
from typing import get_args

from pydantic import ValidationError

from app.core.logging import setup_logging
from app.exceptions import BaseAppError, InvalidQuizRequestError
from app.schemas.question import (
    EducationLevel,
    Quiz,
    QuizConfig,
    QuizGenerationRequest,
    QuizQuestionType,
    QuizType,
    ReshufflePolicy,
)
from app.services import quiz_service

logger = logging.getLogger(__name__)


def image_to_data_url(path: Path) -> str:
    """이미지 파일 → data URL (data:image/png;base64,...)"""
    mime_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    try:
        data = path.read_bytes()
    except OSError as e:
        raise InvalidQuizRequestError(f"이미지 파일을 읽을 수 없습니다: {path} ({e.strerror})")
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="이미지 기반 퀴즈 생성 (정답 배치 균형화)")
    parser.add_argument("images", nargs="+", type=Path, help="학습 자료 이미지 파일")
    parser.add_argument("--count", type=int, default=10, help="문제 개수 (기본값: 10)")
    parser.add_argument(
        "--type", dest="question_type", default="MULTIPLE_CHOICE",
        choices=get_args(QuizQuestionType), help="문제 유형 (기본값: MULTIPLE_CHOICE)",
    )
    parser.add_argument("--level", default="GCSE", choices=get_args(EducationLevel), help="교육 과정")
    parser.add_argument("--quiz-type", choices=get_args(QuizType), help="퀴즈 종류")
    parser.add_argument("--policy", choices=get_args(ReshufflePolicy), help="재셔플 정책 (기본값: 설정값)")
    parser.add_argument("--output", type=Path, help="결과 JSON 파일 (없으면 표준 출력)")
    return parser


async def run(args: argparse.Namespace) -> Quiz:
    images = [image_to_data_url(path) for path in args.images]
    if args.quiz_type == "retrieval":
        return await quiz_service.generate_retrieval_quiz(
            images, args.level, reshuffle_policy=args.policy
        )

    request = QuizGenerationRequest(
        images=images,
        config=QuizConfig(
            question_count=args.count,
            question_type=args.question_type,
            education_level=args.level,
            quiz_type=args.quiz_type,
        ),
        reshuffle_policy=args.policy,
    )
    return await quiz_service.generate_quiz(request)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    # 로깅 설정
    setup_logging()

    try:
        quiz = asyncio.run(run(args))
    except BaseAppError as e:
        logger.error(f"퀴즈 생성 실패 ({e.status_code}): {e.message}")
        return 1
    except ValidationError as e:
        logger.error(f"요청 검증 실패: {e.errors()[0].get('msg')}")
        return 2

    output = quiz.model_dump_json(by_alias=True, indent=2)
    if args.output:
        args.output.write_text(output, encoding="utf-8")
        logger.info(f"퀴즈 저장: {args.output} (문제 {len(quiz.questions)}개)")
    else:
        print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
