import secrets
from typing import Protocol

CODE_MIN = 100000
CODE_MAX = 999999


class RandomSource(Protocol):
    def randint(self, a: int, b: int) -> int:
        ...


class CodeGenerator(Protocol):
    def generate(self) -> str:
        ...


class SixDigitCodeGenerator:
    def __init__(self, rng: RandomSource | None = None) -> None:
        self._rng = rng or secrets.SystemRandom()

    def generate(self) -> str:
        return str(self._rng.randint(CODE_MIN, CODE_MAX))
