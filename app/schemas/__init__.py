from app.schemas.ai import (
    AIImage,
    AIQuizGenerationRequest,
    ParsedQuizResponse,
)
from app.schemas.question import (
    Question,
    Quiz,
    QuizConfig,
    QuizGenerationRequest,
)

__all__ = [
    "Question",
    "Quiz",
    "QuizConfig",
    "QuizGenerationRequest",
    "AIImage",
    "AIQuizGenerationRequest",
    "ParsedQuizResponse",
]
