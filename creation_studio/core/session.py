"""
Session context passed to every gated operation.

Replaces ambient global session state with an explicit object.
"""

import uuid
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class Session:
    """One user session; owner_id is None for anonymous sessions."""
    owner_id: Optional[str] = None
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    closed: bool = False

    def current_owner_id(self) -> Optional[str]:
        """Resolve the owner for the next gated operation."""
        if self.closed:
            return None
        return self.owner_id


def open_session(owner_id: Optional[str] = None) -> Session:
    """Open a session, optionally bound to an owner."""
    if owner_id is not None and not owner_id.strip():
        raise ValueError("owner_id cannot be empty")
    return Session(owner_id=owner_id)


def close_session(session: Session) -> None:
    """Close a session; later gated operations resolve no owner."""
    session.closed = True
