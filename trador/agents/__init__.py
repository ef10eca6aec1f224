"""AI agents for Trador.

Agents are imported lazily so the engine runs without the Agents SDK
being configured.
"""

from trador.agents.commentator import FALLBACK_COMMENTARY, Commentary, Commentator

__all__ = ["Commentary", "Commentator", "FALLBACK_COMMENTARY"]
