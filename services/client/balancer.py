import random
from typing import Optional, Sequence, TypeVar


T = TypeVar("T")


class AzAwarePicker:
    """
    Picks an endpoint, biased towards the caller's availability zone.

    A coin flip decides between endpoints in the same zone and the others.
    When the chosen side is empty the other side is used.
    """

    def __init__(self, availability_zone: str, rng: Optional[random.Random] = None):
        self._availability_zone = availability_zone
        self._rng = rng or random.Random()

    def pick(self, endpoints: Sequence[T]) -> T:
        if not endpoints:
            raise LookupError("no endpoints to pick from")

        same_az = [e for e in endpoints if e.availability_zone == self._availability_zone]
        other_az = [e for e in endpoints if e.availability_zone != self._availability_zone]

        if self._rng.random() < 0.5:
            candidates = same_az or other_az
        else:
            candidates = other_az or same_az

        return self._rng.choice(candidates)
