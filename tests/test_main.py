"""실행 진입점 테스트"""
import json
from unittest.mock import AsyncMock, patch

import pytest

from app import main
from app.exceptions import GenerationFailure
from app.schemas.question import Quiz
from app.services import ai_service, quiz_service


@pytest.fixture
def image_file(tmp_path, png_bytes):
    path = tmp_path / "page1.png"
    path.write_bytes(png_bytes)
    return path


def test_image_to_data_url(image_file, png_bytes):
    data_url = main.image_to_data_url(image_file)

    assert data_url.startswith("data:image/png;base64,")
    assert ai_service.decode_image(data_url).data == png_bytes


def test_main_sets_up_logging_and_writes_quiz(tmp_path, image_file, mc_question_factory):
    """로깅 설정 후 퀴즈 생성, 결과는 camelCase JSON"""
    output = tmp_path / "quiz.json"
    quiz = Quiz(questions=[mc_question_factory(1)], answer_key=[0], shuffled_answer_key=[0])

    with patch.object(main, "setup_logging") as mock_logging:
        with patch.object(quiz_service, "generate_quiz", new_callable=AsyncMock) as mock_generate:
            mock_generate.return_value = quiz
            exit_code = main.main([str(image_file), "--count", "4", "--level", "A-LEVEL", "--output", str(output)])

    assert exit_code == 0
    mock_logging.assert_called_once()
    request = mock_generate.call_args.args[0]
    assert request.config.question_count == 4
    assert request.config.education_level == "A-LEVEL"
    assert request.images[0].startswith("data:image/png;base64,")
    assert json.loads(output.read_text(encoding="utf-8"))["shuffledAnswerKey"] == [0]


def test_main_retrieval(tmp_path, image_file, mc_question_factory):
    """--quiz-type retrieval은 주제별 병렬 생성으로"""
    quiz = Quiz(questions=[mc_question_factory(1)])

    with patch.object(main, "setup_logging"):
        with patch.object(quiz_service, "generate_retrieval_quiz", new_callable=AsyncMock) as mock_retrieval:
            mock_retrieval.return_value = quiz
            exit_code = main.main(
                [str(image_file)] * 3
                + ["--quiz-type", "retrieval", "--policy", "independent", "--output", str(tmp_path / "q.json")]
            )

    assert exit_code == 0
    args, kwargs = mock_retrieval.call_args
    assert len(args[0]) == 3
    assert args[1] == "GCSE"
    assert kwargs["reshuffle_policy"] == "independent"


def test_main_reports_app_error(image_file):
    """애플리케이션 예외는 종료 코드 1"""
    with patch.object(main, "setup_logging"):
        with patch.object(quiz_service, "generate_quiz", new_callable=AsyncMock) as mock_generate:
            mock_generate.side_effect = GenerationFailure("실패", attempts=50)
            assert main.main([str(image_file)]) == 1


def test_main_missing_image(tmp_path):
    """읽을 수 없는 이미지 파일은 생성 전에 실패"""
    with patch.object(main, "setup_logging"):
        with patch.object(quiz_service, "generate_quiz", new_callable=AsyncMock) as mock_generate:
            assert main.main([str(tmp_path / "missing.png")]) == 1

    mock_generate.assert_not_called()


def test_main_invalid_count(image_file):
    """문제 개수 범위 밖은 검증 실패로 종료 코드 2"""
    with patch.object(main, "setup_logging"):
        assert main.main([str(image_file), "--count", "0"]) == 2
