"""
PTCG Rules Engine - Configuration (config.py)

Tunable rule constants. Defaults follow the standard game; tests and the CLI
override individual values.
"""

import json
from typing import List

from pydantic import BaseModel, Field


DEFAULT_OPENING_PRIORITY = [
    "Ralts",
    "Mew",
    "Drifloon",
    "Munkidori",
    "MewEX",
    "LilliesClefairyEX",
]


class EngineConfig(BaseModel):
    """Rule constants consumed by GameEngine and its components."""

    # Setup
    hand_size: int = Field(7, ge=1, description="Opening hand size")
    prize_count: int = Field(6, ge=1, description="Prize cards per player")
    max_bench_size: int = Field(5, ge=1, description="Bench capacity")
    max_mulligans: int = Field(10, ge=0, description="Mulligans allowed before setup aborts")
    opening_priority: List[str] = Field(
        default_factory=lambda: list(DEFAULT_OPENING_PRIORITY),
        description="Card ids tried first when auto-selecting the opening Active",
    )

    # Damage
    damage_counter: int = Field(10, description="HP represented by one damage counter")
    confusion_self_damage: int = Field(30, description="Damage on a failed confusion flip")
    poison_damage: int = Field(10, description="Poison damage between turns")
    burn_damage: int = Field(20, description="Burn damage on heads between turns")
    paralysis_turns: int = Field(1, ge=1, description="Between-turn checks a paralysis lasts")

    # Effects
    psychic_embrace_damage: int = Field(20, description="Self damage from Psychic Embrace")
    restart_hand_target: int = Field(3, description="Restart draws until the hand has this many cards")
    mysterious_tail_depth: int = Field(6, description="Cards looked at by Mysterious Tail")

    # AI
    ai_action_delay: float = Field(0.0, ge=0.0, description="Seconds the CLI waits between AI steps")

    model_config = {"frozen": True}

    @classmethod
    def from_json(cls, path: str) -> "EngineConfig":
        """Load overrides from a JSON object file; missing keys keep defaults."""
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return cls.model_validate(data)
