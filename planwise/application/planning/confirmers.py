"""Confirmers for contexts where no interactive modal exists."""


class StaticConfirmer:
    """Answers every confirmation with a fixed decision (HTTP body flag, CLI --yes)."""

    def __init__(self, answer: bool) -> None:
        self._answer = answer

    async def confirm(self, message: str) -> bool:
        return self._answer
