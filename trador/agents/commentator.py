"""Market commentary agent.

Commentary is cosmetic: it never feeds back into trading decisions, and
any failure degrades to a static line.
"""

import logging
from typing import Optional

from pydantic import BaseModel, Field

from trador.models import Sentiment

logger = logging.getLogger(__name__)


COMMENTATOR_INSTRUCTIONS = """You are 'Trador', a world-class professional Solana swing trader and fund manager.
You review a token's recent market cap trend and the action just taken, then:
1. Provide 1 punchy professional commentary sentence (use degen slang sparingly like 'jeet', 'liquidity', 'rotation').
2. Classify the overall sentiment for the token as BULLISH, NEUTRAL or BEARISH.
"""


class Commentary(BaseModel):
    """A commentary line and its sentiment."""

    text: str = Field(..., description="The commentary sentence provided by Trador.")
    sentiment: Sentiment = Field(..., description="The overall market sentiment for the token.")


FALLBACK_COMMENTARY = Commentary(
    text="Volatility is spiking. Maintaining discipline.",
    sentiment="NEUTRAL",
)


def build_prompt(
    symbol: str,
    valuation_history: list[float],
    did_buy: bool,
    did_sell: bool,
    balance: float,
) -> str:
    """Build the commentary prompt for one asset."""
    current = valuation_history[-1] if valuation_history else 0.0
    previous = valuation_history[-2] if len(valuation_history) > 1 else current
    trend = "UPWARD" if current > previous else "DOWNWARD"
    if did_buy:
        action = "ACCUMULATED POSITION"
    elif did_sell:
        action = "SCALED OUT/PROFIT TAKEN"
    else:
        action = "MONITORING"
    recent = " -> ".join(f"{v:.0f}" for v in valuation_history[-5:])

    return (
        f"Reviewing the current chart for {symbol}.\n\n"
        f"Market Data:\n"
        f"- Recent MCAP Trend: {recent}\n"
        f"- Trend: {trend}\n"
        f"- Action taken: {action}\n"
        f"- Wallet: {balance:.2f} SOL"
    )


class Commentator:
    """Generates short trader commentary with an LLM agent."""

    def __init__(self, model: Optional[str] = None):
        self._model = model
        self._agent = None

    def _get_agent(self):
        if self._agent is None:
            from trador.agents.base import create_agent

            self._agent = create_agent(
                name="Trador Commentator",
                instructions=COMMENTATOR_INSTRUCTIONS,
                model=self._model,
                output_type=Commentary,
            )
        return self._agent

    async def generate(
        self,
        symbol: str,
        valuation_history: list[float],
        did_buy: bool,
        did_sell: bool,
        balance: float,
    ) -> Commentary:
        """Generate commentary for an asset.

        Args:
            symbol: Token symbol.
            valuation_history: Rolling market cap samples, oldest first.
            did_buy: Whether a buy fired this cycle.
            did_sell: Whether a sell fired this cycle.
            balance: Current funding balance.

        Returns:
            The commentary, or ``FALLBACK_COMMENTARY`` on any failure.
        """
        from trador.agents.base import run_agent_async

        prompt = build_prompt(symbol, valuation_history, did_buy, did_sell, balance)
        try:
            output = await run_agent_async(self._get_agent(), prompt)
        except Exception as e:
            logger.warning("Commentary generation failed for %s: %s", symbol, e)
            return FALLBACK_COMMENTARY

        if isinstance(output, Commentary):
            return output
        try:
            return Commentary.model_validate_json(str(output))
        except ValueError:
            return FALLBACK_COMMENTARY
