"""
Request context passed explicitly to services instead of global session state.
"""
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ActorContext:
    """Who is acting, and under which session token."""
    actor_id: Optional[int]
    token_id: Optional[str] = None


# Actor used by bootstrap tasks (seeding)
SYSTEM_ACTOR = ActorContext(actor_id=None)
