"""Post-commit side effects that may fail without affecting the request."""

import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

Effect = Callable[[], Awaitable[None]]


class PostCommitEffects:
    """Ordered list of effects to attempt once the primary write has succeeded.

    Every failure is logged and discarded; nothing is retried.
    """

    def __init__(self) -> None:
        self._effects: list[tuple[str, Effect]] = []

    def add(self, name: str, effect: Effect) -> None:
        self._effects.append((name, effect))

    def __len__(self) -> int:
        return len(self._effects)

    async def run(self) -> None:
        for name, effect in self._effects:
            try:
                await effect()
            except Exception:
                logger.exception("Post-commit effect %s failed", name)
        self._effects.clear()
