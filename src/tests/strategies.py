import string

from hypothesis import strategies as st
from hypothesis.strategies import SearchStrategy

# ruff: noqa: ANN201

uid = st.text(min_size=2, max_size=8, alphabet=string.ascii_lowercase + string.digits)

zone = st.sampled_from(["seq", "humgen", "archive"])

group_name = st.text(min_size=3, max_size=10, alphabet=string.ascii_lowercase + "_-")

gid = st.integers(min_value=1000, max_value=99999)


def account(identity: SearchStrategy[str] = uid):
    return st.builds(lambda u, z: f"{u}#{z}", identity, zone)


public_accounts = st.frozensets(account(), max_size=30)


@st.composite
def directory_groups(draw: st.DrawFn, min_size: int = 0, max_size: int = 6):
    """Mapping of group name to (gid, direct members) with unique names and gids."""
    names = draw(st.lists(group_name, min_size=min_size, max_size=max_size, unique=True))
    gids = draw(st.lists(gid, min_size=len(names), max_size=len(names), unique=True))
    return {name: (group_gid, draw(st.frozensets(uid, max_size=6))) for name, group_gid in zip(names, gids)}


whitespace = st.sampled_from([" ", "  ", "\t", "\n", " \t "])


@st.composite
def access_string(draw: st.DrawFn, tokens: SearchStrategy[list[str]]):
    """Join tokens with arbitrary whitespace, padded on either side."""
    parts = draw(tokens)
    separators = draw(st.lists(whitespace, min_size=len(parts) + 1, max_size=len(parts) + 1))
    joined = separators[0]
    for part, separator in zip(parts, separators[1:]):
        joined += part + separator
    return joined
