import abc
from typing import Iterator, Tuple

from pedspeed.utils.types import FramePacket


class BaseInput(abc.ABC):
    """Frame source yielding (index, FramePacket) with increasing timestamps."""

    @abc.abstractmethod
    def start(self) -> None:
        ...

    @abc.abstractmethod
    def stop(self) -> None:
        ...

    @abc.abstractmethod
    def frames(self) -> Iterator[Tuple[int, FramePacket]]:
        ...

    def __enter__(self) -> "BaseInput":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
