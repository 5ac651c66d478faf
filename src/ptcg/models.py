"""
PTCG Rules Engine - Data Layer (models.py)
Defines the card records, the runtime creature/zone/player/game state,
decision requests and action results.

Card definitions are immutable and shared; everything under GameState is
mutable and owned by exactly one player (or the board, for the Stadium).
All state models are clonable (deep copy) so an in-flight effect can be
rolled back.
"""

import uuid
from enum import Enum
from typing import Annotated, Any, Callable, List, Literal, Optional, Set, Union

from pydantic import BaseModel, Field


# ============================================================================
# 1. ENUMERATIONS
# ============================================================================

class CardKind(str, Enum):
    """Card supertype."""
    POKEMON = "Pokemon"
    TRAINER = "Trainer"
    ENERGY = "Energy"


class Stage(str, Enum):
    """Position in an evolution line."""
    BASIC = "Basic"
    STAGE_1 = "Stage1"
    STAGE_2 = "Stage2"


class PokemonType(str, Enum):
    """
    Creature and energy types.

    COLORLESS doubles as "none" for weakness/resistance fields.
    """
    PSYCHIC = "P"
    DARKNESS = "D"
    FAIRY = "Y"
    GRASS = "G"
    METAL = "M"
    COLORLESS = "C"


class TrainerType(str, Enum):
    SUPPORTER = "Supporter"
    ITEM = "Item"
    TOOL = "Tool"
    STADIUM = "Stadium"


class StatusCondition(str, Enum):
    """A creature carries at most one status condition at a time."""
    NONE = "None"
    SLEEP = "Sleep"
    PARALYSIS = "Paralysis"
    CONFUSION = "Confusion"
    POISON = "Poison"
    BURN = "Burn"


class GamePhase(str, Enum):
    SETUP = "setup"
    DRAW = "draw"
    MAIN = "main"
    END = "end"


class WinReason(str, Enum):
    PRIZE_ZERO = "prize_zero"
    NO_CREATURES = "no_creatures_in_play"
    DECK_OUT = "deck_out"
    SETUP_FAILED = "setup_failed"


class AttackEffect(str, Enum):
    """Attack effect ids (closed set; the combat dispatch table is keyed by these)."""
    COPY_ATTACK = "copy_attack"
    COPY_RANDOM_ATTACK = "copy_random_attack"
    SELF_COUNTERS_X30 = "self_counters_x30"
    BENCH_20_PLUS = "bench_20_plus"
    INFLICT_CONFUSION = "inflict_confusion"


class AbilityEffect(str, Enum):
    """Ability ids. Also used as the once-per-turn flag keys on creatures."""
    ADRENA_BRAIN = "adrena_brain"
    MYSTERIOUS_TAIL = "mysterious_tail"
    PSYCHIC_EMBRACE = "psychic_embrace"
    RESTART = "restart"
    REFINEMENT = "refinement"
    FAIRY_ZONE = "fairy_zone"


class TrainerEffect(str, Enum):
    # Supporters
    RESEARCH = "research"
    IONO = "iono"
    BOSS_ORDERS = "boss_orders"
    PEPPER = "pepper"
    # Items
    NEST_BALL = "nest_ball"
    LEVEL_BALL = "level_ball"
    ULTRA_BALL = "ultra_ball"
    RARE_CANDY = "rare_candy"
    EARTHEN_VESSEL = "earthen_vessel"
    ESCAPE_ROPE = "escape_rope"
    SUPER_ROD = "super_rod"
    COUNTER_CATCHER = "counter_catcher"
    LOST_VACUUM = "lost_vacuum"
    # Tools
    BRAVERY_CHARM = "bravery_charm"
    # Stadiums
    ARTAZON = "artazon"
    BEACH_COURT = "beach_court"


class EnergyEffect(str, Enum):
    REVERSAL = "reversal"


# HP granted by Bravery Charm to a Basic creature
BRAVERY_CHARM_HP = 50


# ============================================================================
# 2. CARD DEFINITIONS (IMMUTABLE, SHARED)
# ============================================================================

class EnergyRequirement(BaseModel):
    """A typed part of an attack cost (e.g. 2x Psychic)."""
    type: PokemonType
    count: int = Field(1, ge=1)

    model_config = {"frozen": True}


class AttackDefinition(BaseModel):
    name: str
    energy_cost: int = Field(0, ge=0, description="Total energy count needed")
    requirements: List[EnergyRequirement] = Field(default_factory=list)
    base_damage: int = Field(0, ge=0)
    effect: Optional[AttackEffect] = None
    description: str = ""
    clears_status: bool = Field(False, description="Attacker's status is cleared before damage")

    model_config = {"frozen": True}


class AbilityDefinition(BaseModel):
    effect: AbilityEffect
    name: str
    once_per_turn: bool = True
    description: str = ""

    model_config = {"frozen": True}


class PokemonCard(BaseModel):
    """Immutable creature card record."""
    kind: Literal["Pokemon"] = "Pokemon"
    id: str
    name: str
    stage: Stage = Stage.BASIC
    evolves_from: str = Field("", description="Name of the previous stage (Stage1/Stage2)")
    type: PokemonType = PokemonType.COLORLESS
    base_hp: int = Field(..., gt=0)
    retreat_cost: int = Field(0, ge=0)
    is_ex: bool = False
    weakness: PokemonType = PokemonType.COLORLESS
    weakness_multiplier: int = 2
    resistance: PokemonType = PokemonType.COLORLESS
    resistance_value: int = 30
    attacks: List[AttackDefinition] = Field(default_factory=list)
    abilities: List[AbilityDefinition] = Field(default_factory=list)

    model_config = {"frozen": True}

    @property
    def is_basic(self) -> bool:
        return self.stage == Stage.BASIC

    @property
    def has_resistance(self) -> bool:
        return self.resistance != PokemonType.COLORLESS

    def get_ability(self, effect: AbilityEffect) -> Optional[AbilityDefinition]:
        for ability in self.abilities:
            if ability.effect == effect:
                return ability
        return None

    def display_name(self) -> str:
        return f"{self.name} ex" if self.is_ex else self.name


class TrainerCard(BaseModel):
    """Immutable trainer card record."""
    kind: Literal["Trainer"] = "Trainer"
    id: str
    name: str
    trainer_type: TrainerType
    effect: TrainerEffect
    description: str = ""

    model_config = {"frozen": True}

    def display_name(self) -> str:
        return self.name


class EnergyCard(BaseModel):
    """Immutable energy card record."""
    kind: Literal["Energy"] = "Energy"
    id: str
    name: str
    is_basic: bool = True
    provides_type: PokemonType = PokemonType.COLORLESS
    provides_amount: int = Field(1, ge=0)
    is_special: bool = False
    effect: Optional[EnergyEffect] = None
    description: str = ""

    model_config = {"frozen": True}

    def display_name(self) -> str:
        return f"Basic {self.name} Energy" if self.is_basic else self.name


Card = Annotated[Union[PokemonCard, TrainerCard, EnergyCard], Field(discriminator="kind")]


def card_label(card: Union[PokemonCard, TrainerCard, EnergyCard]) -> str:
    """Short human-readable label for decision options and logs."""
    if isinstance(card, PokemonCard):
        return f"{card.display_name()} ({card.stage.value}, HP{card.base_hp})"
    if isinstance(card, TrainerCard):
        return f"{card.name} ({card.trainer_type.value})"
    return card.display_name()


# ============================================================================
# 3. CREATURE INSTANCE (RUNTIME STATE OF A POKEMON IN PLAY)
# ============================================================================

class CreatureInstance(BaseModel):
    """
    A Pokémon card bound to runtime state.

    Created when a Basic enters play (from hand or via an effect) or when an
    evolution replaces an existing instance. Destroyed on knockout or
    replacement-by-evolution.
    """
    instance_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    card: PokemonCard
    owner_index: int = Field(..., ge=0, le=1)

    current_damage: int = Field(0, ge=0, description="Always a multiple of the damage-counter unit")
    turns_in_play: int = Field(0, description="Owner turn-starts survived in play (evolution sickness)")
    was_played_this_turn: bool = Field(True, description="Entered play during the current turn")
    evolved_this_turn: bool = False

    attached_energies: List[EnergyCard] = Field(default_factory=list)
    attached_tool: Optional[TrainerCard] = None
    previous_stages: List[PokemonCard] = Field(default_factory=list, description="Cards evolved from, bottom first")

    status: StatusCondition = StatusCondition.NONE
    paralysis_turns: int = Field(0, description="Between-turn checks left before paralysis clears")
    abilities_used: Set[AbilityEffect] = Field(default_factory=set)

    @property
    def max_hp(self) -> int:
        bonus = 0
        if (self.attached_tool is not None
                and self.attached_tool.effect == TrainerEffect.BRAVERY_CHARM
                and self.card.is_basic):
            bonus = BRAVERY_CHARM_HP
        return self.card.base_hp + bonus

    @property
    def remaining_hp(self) -> int:
        return self.max_hp - self.current_damage

    @property
    def is_knocked_out(self) -> bool:
        return self.current_damage >= self.max_hp

    @property
    def name(self) -> str:
        return self.card.name

    def damage_counters(self, unit: int = 10) -> int:
        return self.current_damage // unit

    def has_used_ability(self, effect: AbilityEffect) -> bool:
        return effect in self.abilities_used

    def clear_status(self) -> None:
        self.status = StatusCondition.NONE
        self.paralysis_turns = 0

    def on_new_turn(self) -> None:
        """Owner's turn started: age the creature and reset once-per-turn abilities."""
        self.turns_in_play += 1
        self.was_played_this_turn = False
        self.evolved_this_turn = False
        self.abilities_used.clear()

    def all_cards(self) -> List[Union[PokemonCard, TrainerCard, EnergyCard]]:
        """Every card this creature is made of: stages, energies and tool."""
        cards = list(self.previous_stages) + [self.card] + list(self.attached_energies)
        if self.attached_tool is not None:
            cards.append(self.attached_tool)
        return cards

    def label(self) -> str:
        return f"{self.card.display_name()} (HP {self.remaining_hp}/{self.max_hp})"


# ============================================================================
# 4. PLAYER STATE
# ============================================================================

class PlayerState(BaseModel):
    """
    One player's zones and per-turn flags.

    Deck top is index 0. Prizes are a stack whose top is the last element.
    """
    index: int = Field(..., ge=0, le=1)
    name: str = "Player"
    is_ai: bool = True

    deck: List[Card] = Field(default_factory=list)
    hand: List[Card] = Field(default_factory=list)
    discard: List[Card] = Field(default_factory=list)
    lost_zone: List[Card] = Field(default_factory=list)
    prizes: List[Card] = Field(default_factory=list)

    active: Optional[CreatureInstance] = None
    bench: List[CreatureInstance] = Field(default_factory=list)

    # Turn flags (reset at the start of this player's turn)
    energy_attached_this_turn: bool = False
    supporter_used_this_turn: bool = False
    stadium_used_this_turn: bool = False
    stadium_effect_used_this_turn: bool = False
    attacked_this_turn: bool = False
    retreated_this_turn: bool = False

    mulligans_given: int = 0

    def reset_turn_flags(self) -> None:
        self.energy_attached_this_turn = False
        self.supporter_used_this_turn = False
        self.stadium_used_this_turn = False
        self.stadium_effect_used_this_turn = False
        self.attacked_this_turn = False
        self.retreated_this_turn = False

    def all_creatures(self) -> List[CreatureInstance]:
        """Active first, then bench in order."""
        result = []
        if self.active is not None:
            result.append(self.active)
        result.extend(self.bench)
        return result

    def has_any_in_play(self) -> bool:
        return self.active is not None or len(self.bench) > 0

    def find_creature(self, instance_id: str) -> Optional[CreatureInstance]:
        for creature in self.all_creatures():
            if creature.instance_id == instance_id:
                return creature
        return None

    def bench_index_of(self, creature: CreatureInstance) -> int:
        for i, benched in enumerate(self.bench):
            if benched.instance_id == creature.instance_id:
                return i
        return -1

    def is_active(self, creature: CreatureInstance) -> bool:
        return self.active is not None and self.active.instance_id == creature.instance_id

    def has_basic_in_hand(self) -> bool:
        return any(isinstance(c, PokemonCard) and c.is_basic for c in self.hand)


# ============================================================================
# 5. GAME STATE
# ============================================================================

class StadiumInPlay(BaseModel):
    card: TrainerCard
    owner_index: int


class GameState(BaseModel):
    """The root state object. Clonable for decision rollback."""
    players: List[PlayerState] = Field(..., min_length=2, max_length=2)

    current_player_index: int = 0
    first_player_index: int = 0
    turn_count: int = Field(0, description="Increments once per full round; 1 during the first round")
    phase: GamePhase = GamePhase.SETUP

    stadium: Optional[StadiumInPlay] = None

    winner_index: int = -1
    win_reason: Optional[WinReason] = None

    def get_player(self, index: int) -> PlayerState:
        return self.players[index]

    def current_player(self) -> PlayerState:
        return self.players[self.current_player_index]

    def opponent_of(self, index: int) -> PlayerState:
        return self.players[1 - index]

    def is_game_over(self) -> bool:
        return self.winner_index != -1 or self.win_reason is not None

    def is_first_players_first_turn(self) -> bool:
        return self.current_player_index == self.first_player_index and self.turn_count == 1

    def find_creature(self, instance_id: str) -> Optional[CreatureInstance]:
        for player in self.players:
            found = player.find_creature(instance_id)
            if found is not None:
                return found
        return None

    def clone(self) -> "GameState":
        return self.model_copy(deep=True)


# ============================================================================
# 6. DECISION REQUESTS
# ============================================================================

class DecisionKind(str, Enum):
    SELECT = "select"               # pick exactly one option
    MULTI_SELECT = "multi_select"   # pick up to max_picks options
    CONFIRM = "confirm"             # yes / no


class DecisionOption(BaseModel):
    label: str
    value: Any = None


class DecisionRequest(BaseModel):
    """
    A point where resolution pauses for an external choice.

    The effect that issued the request receives:
    - SELECT: the chosen option's value (None when there were no options)
    - MULTI_SELECT: a list of chosen values
    - CONFIRM: a bool
    """
    request_id: str = Field(default_factory=lambda: uuid.uuid4().hex[:8])
    kind: DecisionKind
    player_index: int = Field(..., description="Player who must answer")
    prompt: str
    message: str = ""
    options: List[DecisionOption] = Field(default_factory=list)
    max_picks: int = 1
    min_picks: int = 0
    cancellable: bool = True
    source: str = Field("", description="Effect that issued the request")
    on_resolved: Optional[Callable[[Any], None]] = Field(None, exclude=True)

    model_config = {"arbitrary_types_allowed": True}

    def option_values(self) -> List[Any]:
        return [o.value for o in self.options]


# ============================================================================
# 7. ACTION RESULT
# ============================================================================

class ActionResult(BaseModel):
    """
    Outcome of an engine operation.

    Illegal actions come back with success=False and a human-readable
    reason; state is unchanged. A suspended operation carries the pending
    request and has success=False until it is resolved.
    """
    success: bool
    reason: str = ""
    pending: Optional[DecisionRequest] = None

    @property
    def is_pending(self) -> bool:
        return self.pending is not None

    @classmethod
    def ok(cls, reason: str = "") -> "ActionResult":
        return cls(success=True, reason=reason)

    @classmethod
    def fail(cls, reason: str) -> "ActionResult":
        return cls(success=False, reason=reason)

    @classmethod
    def awaiting(cls, request: DecisionRequest) -> "ActionResult":
        return cls(success=False, reason="awaiting decision", pending=request)

    def __bool__(self) -> bool:
        return self.success
