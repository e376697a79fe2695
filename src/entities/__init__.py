from .directory import DirectoryGroup, PrimaryGroupAssociation
from .model import BaseModel, json_default
from .registry import AccessPolicy

__all__ = [
    "AccessPolicy",
    "BaseModel",
    "DirectoryGroup",
    "PrimaryGroupAssociation",
    "json_default",
]
