from app.services.ai_service import decode_image, generate_questions
from app.services.answer_key import (
    generate_balanced_sequence,
    is_valid_sequence,
    letters_to_sequence,
    sequence_to_letters,
)
from app.services.option_shuffle import (
    apply_answer_key,
    place_correct_option,
    reshuffle_questions,
    shuffle_options,
)
from app.services.quiz_service import generate_quiz, generate_retrieval_quiz
from app.services.response_parser import parse_questions

__all__ = [
    "generate_balanced_sequence",
    "is_valid_sequence",
    "letters_to_sequence",
    "sequence_to_letters",
    "shuffle_options",
    "place_correct_option",
    "apply_answer_key",
    "reshuffle_questions",
    "parse_questions",
    "decode_image",
    "generate_questions",
    "generate_quiz",
    "generate_retrieval_quiz",
]
