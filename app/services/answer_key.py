"""정답 위치 시퀀스 생성

객관식 N문항의 정답 위치(0-3 = A-D)를 미리 정한다.
- 연속된 두 문항의 정답 위치가 같지 않다.
- 네 위치가 고르게 쓰인다 (각 위치 N//4 또는 N//4 + 1회).
"""
import logging
import random
from collections import Counter

from app.core.config import settings
from app.exceptions import GenerationFailure, InvalidQuizRequestError

logger = logging.getLogger(__name__)

POSITION_COUNT = 4
POSITION_LETTERS = "abcd"
MIN_SEQUENCE_LENGTH = 2


def _initial_quotas(length: int, rng: random.Random) -> list[int]:
    """위치별 할당량: N//4씩, 나머지는 무작위 위치에 1개씩 추가"""
    base, remainder = divmod(length, POSITION_COUNT)
    quotas = [base] * POSITION_COUNT
    for position in rng.sample(range(POSITION_COUNT), remainder):
        quotas[position] += 1
    return quotas


def _try_build(length: int, rng: random.Random) -> list[int] | None:
    """한 번의 시도. 막다른 길(직전 위치만 할당량이 남음)이면 None"""
    quotas = _initial_quotas(length, rng)
    sequence: list[int] = []
    previous: int | None = None

    for _ in range(length):
        candidates = [
            position
            for position in range(POSITION_COUNT)
            if quotas[position] > 0 and position != previous
        ]
        if not candidates:
            return None
        chosen = rng.choice(candidates)
        quotas[chosen] -= 1
        sequence.append(chosen)
        previous = chosen

    return sequence


def generate_balanced_sequence(
    length: int,
    *,
    rng: random.Random | None = None,
    max_attempts: int | None = None,
) -> list[int]:
    """균형 잡힌 정답 위치 시퀀스 생성

    막다른 길에 도달하면 시퀀스 전체를 처음부터 다시 만든다 (최대 max_attempts회).
    길이가 2 미만이거나 재시도를 모두 소진하면 GenerationFailure.

    후보 위치를 균등하게 고르므로 막다른 길은 드물지 않다. 한 번의 시도가 막힐 확률은
    N=30에서 약 0.55, N=50에서 약 0.64이다. 시도끼리 독립이라 기본 50회를 모두 실패할
    확률은 N<=50에서 2e-10 이하이고, 재시도 비용은 시도당 O(N)이다.
    """
    if length < MIN_SEQUENCE_LENGTH:
        raise GenerationFailure(
            f"정답 시퀀스 길이는 {MIN_SEQUENCE_LENGTH} 이상이어야 합니다: {length}"
        )

    rng = rng or random.Random()
    if max_attempts is None:
        max_attempts = settings.answer_key_max_attempts

    for attempt in range(1, max_attempts + 1):
        sequence = _try_build(length, rng)
        if sequence is None:
            logger.debug(f"정답 시퀀스 막다른 길, 재시도: length={length}, attempt={attempt}/{max_attempts}")
            continue
        if not is_valid_sequence(sequence, length):
            # 무효 시퀀스는 반환하지 않음
            logger.error(f"정답 시퀀스 검증 실패: {sequence_to_letters(sequence)}")
            continue
        if attempt > 1:
            logger.debug(f"정답 시퀀스 생성 성공 (시도 {attempt}/{max_attempts}): length={length}")
        return sequence

    logger.error(f"정답 시퀀스 생성 실패: length={length}, 최대 재시도 {max_attempts}회 초과")
    raise GenerationFailure(
        f"{max_attempts}회 시도 안에 길이 {length}의 정답 시퀀스를 만들지 못했습니다",
        attempts=max_attempts,
    )


def count_positions(sequence: list[int]) -> list[int]:
    """위치별 등장 횟수 [A, B, C, D]"""
    counter = Counter(sequence)
    return [counter.get(position, 0) for position in range(POSITION_COUNT)]


def has_adjacent_repeat(sequence: list[int]) -> bool:
    return any(a == b for a, b in zip(sequence, sequence[1:]))


def is_balanced(sequence: list[int]) -> bool:
    """각 위치가 N//4 또는 ceil(N/4)회 등장하는지"""
    low = len(sequence) // POSITION_COUNT
    high = -(-len(sequence) // POSITION_COUNT)
    return all(low <= count <= high for count in count_positions(sequence))


def is_valid_sequence(sequence: list[int], length: int | None = None) -> bool:
    """길이, 값 범위, 연속 중복 없음, 균형 분포를 모두 만족하는지"""
    if length is not None and len(sequence) != length:
        return False
    if any(not isinstance(p, int) or not 0 <= p < POSITION_COUNT for p in sequence):
        return False
    return not has_adjacent_repeat(sequence) and is_balanced(sequence)


def sequence_to_letters(sequence: list[int]) -> str:
    """[0, 1, 3] -> 'abd'"""
    return "".join(POSITION_LETTERS[p] for p in sequence)


def letters_to_sequence(letters: str) -> list[int]:
    """'abd' / 'A B D' / 'a,b,d' -> [0, 1, 3]"""
    cleaned = [ch for ch in letters.lower() if not ch.isspace() and ch not in ",-"]
    invalid = sorted({ch for ch in cleaned if ch not in POSITION_LETTERS})
    if invalid:
        raise InvalidQuizRequestError(f"정답 시퀀스에 허용되지 않는 문자가 있습니다: {''.join(invalid)}")
    return [POSITION_LETTERS.index(ch) for ch in cleaned]
