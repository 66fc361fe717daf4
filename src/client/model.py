from dataclasses import dataclass

from src.collection.model import PersistedItem

@dataclass
class SubmitResult:
    message: str
    file_paths: list[str]
    # stored items in their committed order
    items: list[PersistedItem]
