"""
Deciding which sessions belong to the signed-in account.

Identity fields are compared in a fixed precedence: UUID, numeric account
id, email, then display name. The first field that matches wins; fields
that are missing on either side are skipped.
"""
import re
from typing import List, Optional, Sequence, TypeVar

from ..schemas.auth import AccountIdentity
from ..schemas.session import SessionUser

_WHITESPACE = re.compile(r"\s+")

S = TypeVar("S")


def normalized_identifier(value: Optional[str]) -> str:
    """Trim, lowercase and collapse internal whitespace"""
    if not value:
        return ""
    return _WHITESPACE.sub(" ", value.strip().lower())


def is_owned_session(user: Optional[SessionUser], identity: AccountIdentity) -> bool:
    if user is None:
        return False

    if identity.uuid and user.uuid and user.uuid.lower() == identity.uuid.lower():
        return True

    # 0 means "unset" on both the account and session side
    if identity.user_id and user.id == identity.user_id:
        return True

    if identity.email and user.email and normalized_identifier(user.email) == normalized_identifier(identity.email):
        return True

    username = normalized_identifier(identity.username)
    if username and normalized_identifier(user.title) == username:
        return True

    return False


def prioritize_sessions(sessions: Sequence[S], identity: AccountIdentity) -> List[S]:
    """Stable partition: owned sessions first, each group in its original order"""
    owned, others = [], []
    for session in sessions:
        if is_owned_session(getattr(session, "user", None), identity):
            owned.append(session)
        else:
            others.append(session)
    return owned + others
