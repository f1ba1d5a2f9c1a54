"""UUIDGenerator port - identifiers for new rows."""

import uuid
from abc import ABC, abstractmethod


class UUIDGenerator(ABC):
    @abstractmethod
    def generate_uuid(self) -> str:
        raise NotImplementedError


class RealUUIDGenerator(UUIDGenerator):
    def generate_uuid(self) -> str:
        return str(uuid.uuid4())


class FakeUUIDGenerator(UUIDGenerator):
    """Predictable ids for tests: 00000000-0000-0000-0000-000000000001, ..."""

    def __init__(self) -> None:
        self._counter = 0

    def generate_uuid(self) -> str:
        self._counter += 1
        hex_value = f"{self._counter:032x}"
        return f"{hex_value[:8]}-{hex_value[8:12]}-{hex_value[12:16]}-{hex_value[16:20]}-{hex_value[20:]}"

    def reset(self) -> None:
        self._counter = 0
