from typing import Optional

from .model import BaseModel


class AccessPolicy(BaseModel):
    """Access policy of one study as recorded in the registry.

    The raw access strings are whitespace-separated tokens, each either a
    directory group name or a user identity. ``None`` (column unset) and an
    empty string are kept apart here but both mean "no tokens".
    """

    study_id: str
    data_access_group: Optional[str] = None
    contaminated_human_data_access_group: Optional[str] = None
    data_release_strategy: Optional[str] = None
    contaminated_human_dna: bool = False

    def is_managed(self, managed_release_strategy: str = "managed") -> bool:
        return self.data_release_strategy == managed_release_strategy
