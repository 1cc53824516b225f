"""
Unbiased shuffling used by the group draw and the fixture scheduler.
"""
import random
from typing import List, Optional, Sequence, TypeVar

T = TypeVar('T')


def shuffle(sequence: Sequence[T], rng: Optional[random.Random] = None) -> List[T]:
    """
    Return a uniformly random permutation of ``sequence`` as a new list.

    Fisher-Yates: walk from the last index down to 1 and swap each element
    with one drawn uniformly from the not-yet-fixed prefix (inclusive).
    The input is left unmodified.
    """
    rng = rng or random
    shuffled = list(sequence)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled
