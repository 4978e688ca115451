"""
Aggregazione delle statistiche giocatore a partire dal registro azioni.

Le funzioni di questo modulo sono pure: ricevono sequenze di partite gia'
caricate dal database (oggetti ``GameStat`` o semplici dict) e restituiscono
strutture serializzabili in JSON. Nessun accesso a DB o storage qui dentro.
"""
import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple


class ActionKind(str, Enum):
    TRY = "try"
    CONVERSION = "conversion"
    PENALTY = "penalty"
    PASS_POSITIVE = "pass_positive"
    PASS_NEGATIVE = "pass_negative"
    DUEL_WON = "duel_won"
    DUEL_NEUTRAL = "duel_neutral"
    DUEL_LOST = "duel_lost"
    TACKLE_OFFENSIVE = "tackle_offensive"
    TACKLE_MISSED = "tackle_missed"
    TACKLE_SUFFERED = "tackle_suffered"
    FAULT = "fault"


# tipo azione -> (contatore da incrementare, punti assegnati)
ACTION_EFFECTS: Dict[str, Tuple[str, int]] = {
    ActionKind.TRY.value: ("tries", 5),
    ActionKind.CONVERSION.value: ("conversions", 2),
    ActionKind.PENALTY.value: ("penalties", 3),
    ActionKind.PASS_POSITIVE.value: ("pass_positive", 0),
    ActionKind.PASS_NEGATIVE.value: ("pass_negative", 0),
    ActionKind.DUEL_WON.value: ("duel_won", 0),
    ActionKind.DUEL_NEUTRAL.value: ("duel_neutral", 0),
    ActionKind.DUEL_LOST.value: ("duel_lost", 0),
    ActionKind.TACKLE_OFFENSIVE.value: ("tackle_offensive", 0),
    ActionKind.TACKLE_MISSED.value: ("tackle_missed", 0),
    ActionKind.TACKLE_SUFFERED.value: ("tackle_suffered", 0),
    ActionKind.FAULT.value: ("faults", 0),
}


@dataclass
class AggregatedStats:
    matches_played: int = 0
    tries: int = 0
    points: int = 0
    minutes_played: int = 0
    conversions: int = 0
    penalties: int = 0
    pass_positive: int = 0
    pass_negative: int = 0
    duel_won: int = 0
    duel_neutral: int = 0
    duel_lost: int = 0
    tackle_offensive: int = 0
    tackle_missed: int = 0
    tackle_suffered: int = 0
    faults: int = 0

    def add_match(self, record: Any) -> None:
        """Somma una partita: presenza, minuti e tutte le azioni riconosciute."""
        self.matches_played += 1
        self.minutes_played += _get(record, "play_time") or 0
        for kind in action_types(record):
            self.add_action(kind)

    def add_action(self, kind: str) -> None:
        effect = ACTION_EFFECTS.get(kind)
        if effect is None:
            return
        counter, points = effect
        setattr(self, counter, getattr(self, counter) + 1)
        self.points += points


@dataclass
class ProgressPoint:
    date: int
    passes_accuracy: Optional[float]
    tackle_accuracy: Optional[float]
    duel_accuracy: Optional[float]
    faults: int
    minutes_played: int
    performance_rating: float


@dataclass
class PlayerSummary:
    id: str
    user_id: str
    first_name: str
    last_name: str
    stats: AggregatedStats = field(default_factory=AggregatedStats)


def _get(record: Any, name: str, default: Any = None) -> Any:
    if isinstance(record, Mapping):
        return record.get(name, default)
    return getattr(record, name, default)


def action_types(record: Any) -> List[str]:
    """
    Estrae i tipi azione di una partita, nell'ordine in cui sono stati registrati.
    Liste malformate valgono come vuote, voci senza ``type`` vengono saltate.
    """
    actions = _get(record, "actions")
    if not isinstance(actions, list):
        return []
    kinds = []
    for action in actions:
        if isinstance(action, Mapping) and isinstance(action.get("type"), str):
            kinds.append(action["type"])
    return kinds


def round_half_away(value: float, digits: int) -> float:
    factor = 10 ** digits
    scaled = value * factor
    return math.copysign(math.floor(abs(scaled) + 0.5), scaled) / factor


def _accuracy(successes: int, total: int) -> Optional[float]:
    if total <= 0:
        return None
    return round_half_away(successes / total * 100, 2)


def split_player_name(name: Optional[str]) -> Tuple[str, str]:
    parts = (name or "").strip().split(" ")
    return parts[0], " ".join(parts[1:])


def aggregate(records: Iterable[Any]) -> AggregatedStats:
    """Totali di carriera. L'ordine delle partite non conta."""
    stats = AggregatedStats()
    for record in records:
        stats.add_match(record)
    return stats


def progress(records: Iterable[Any]) -> List[ProgressPoint]:
    """
    Serie storica cumulativa, un punto per partita.

    Le partite DEVONO arrivare gia' ordinate per ``created_at`` crescente:
    qui non si riordina nulla.

    Nota sui placcaggi: i "tackle_suffered" contano sia al numeratore che al
    denominatore della precisione. E' la convenzione del prodotto, non va
    "corretta" senza conferma.
    """
    totals = AggregatedStats()
    rating_sum = 0
    points: List[ProgressPoint] = []

    for record in records:
        totals.add_match(record)
        rating_sum += _get(record, "performance_rating") or 0

        passes = totals.pass_positive + totals.pass_negative
        tackles = totals.tackle_offensive + totals.tackle_missed + totals.tackle_suffered
        duels = totals.duel_won + totals.duel_neutral + totals.duel_lost

        points.append(ProgressPoint(
            date=_get(record, "created_at"),
            passes_accuracy=_accuracy(totals.pass_positive, passes),
            tackle_accuracy=_accuracy(totals.tackle_offensive + totals.tackle_suffered, tackles),
            duel_accuracy=_accuracy(totals.duel_won + totals.duel_neutral, duels),
            faults=totals.faults,
            minutes_played=totals.minutes_played,
            performance_rating=round_half_away(rating_sum / totals.matches_played, 1),
        ))
    return points


def player_summary(user_id: str, records: List[Any]) -> PlayerSummary:
    first, last = split_player_name(_get(records[0], "player_name") if records else "")
    return PlayerSummary(
        id=user_id,
        user_id=user_id,
        first_name=first,
        last_name=last,
        stats=aggregate(records),
    )


def club_roster(records: Iterable[Any]) -> List[PlayerSummary]:
    """Un riepilogo per ogni giocatore del club, nell'ordine in cui compare."""
    roster: Dict[str, PlayerSummary] = {}
    for record in records:
        user_id = _get(record, "user_id")
        player = roster.get(user_id)
        if player is None:
            first, last = split_player_name(_get(record, "player_name"))
            player = PlayerSummary(id=user_id, user_id=user_id, first_name=first, last_name=last)
            roster[user_id] = player
        player.stats.add_match(record)
    return list(roster.values())
