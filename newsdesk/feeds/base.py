from abc import ABC, abstractmethod
from typing import List, Dict


class BaseFeed(ABC):
    key: str
    name: str

    @abstractmethod
    def fetch(self) -> List[Dict]:
        pass
