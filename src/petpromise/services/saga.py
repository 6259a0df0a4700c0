import logging
from typing import Callable

from botocore.exceptions import ClientError
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

logger = logging.getLogger(__name__)


@retry(
    wait=wait_exponential(multiplier=1, min=1, max=4),
    stop=stop_after_attempt(3),
    retry=retry_if_exception_type(ClientError),
    reraise=True
)
def _run_compensation(compensation: Callable[[], object]) -> None:
    compensation()


class Saga:
    """
    Ordered steps across independent stores. Each completed step may leave a
    compensation behind; if a later step raises, compensations run in reverse
    order and the original error propagates.

        with Saga("accept_request") as saga:
            saga.step(write_pet, compensation=restore_pet)
            saga.step(write_request)
    """

    def __init__(self, name: str):
        self.name = name
        self._compensations: list[Callable[[], object]] = []

    def __enter__(self) -> "Saga":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is not None:
            self.rollback(exc)
        return False

    def step(self, action: Callable[[], object],
             compensation: Callable[[], object] | None = None):
        result = action()
        if compensation is not None:
            self._compensations.append(compensation)
        return result

    def compensate_with(self, compensation: Callable[[], object]) -> None:
        """Register a compensation for work done before the saga started."""
        self._compensations.append(compensation)

    def rollback(self, cause: BaseException | None = None) -> None:
        if not self._compensations:
            return
        logger.warning(
            f"Saga {self.name} failed ({cause!r}), running {len(self._compensations)} compensation(s)",
            extra={"saga": self.name}
        )
        while self._compensations:
            compensation = self._compensations.pop()
            try:
                _run_compensation(compensation)
            except Exception:
                logger.exception(
                    f"Compensation in saga {self.name} failed; stores need manual repair",
                    extra={"saga": self.name}
                )
