from .model import BaseModel


class DirectoryGroup(BaseModel):
    name: str
    gid: int
    members: frozenset[str] = frozenset()


class PrimaryGroupAssociation(BaseModel):
    uid: str
    gid: int
