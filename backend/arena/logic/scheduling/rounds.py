import re
from enum import auto

from arena.utils.types import EnumAutoStr

FINAL = "Final"
SEMI_FINALS = "Semi-finals"
QUARTER_FINALS = "Quarter-finals"

_LEAGUE_ROUND_RE = re.compile(r"^round\s+(\d+)$", re.IGNORECASE)
_GROUP_ROUND_RE = re.compile(r"^group\s+([a-z])$", re.IGNORECASE)
_SWISS_ROUND_RE = re.compile(r"^swiss\s+round\s+(\d+)$", re.IGNORECASE)
_ROUND_OF_RE = re.compile(r"^round\s+of\s+(\d+)$", re.IGNORECASE)

_KNOCKOUT_RANKS = {
    FINAL.lower(): 1000,
    SEMI_FINALS.lower(): 900,
    QUARTER_FINALS.lower(): 800,
}


class RoundKind(EnumAutoStr):
    LEAGUE = auto()
    GROUP = auto()
    SWISS = auto()
    KNOCKOUT = auto()
    UNKNOWN = auto()


def classify_round(label: str) -> RoundKind:
    normalized = label.strip()
    if normalized.lower() in _KNOCKOUT_RANKS or _ROUND_OF_RE.match(normalized):
        return RoundKind.KNOCKOUT
    if _GROUP_ROUND_RE.match(normalized):
        return RoundKind.GROUP
    if _SWISS_ROUND_RE.match(normalized):
        return RoundKind.SWISS
    if _LEAGUE_ROUND_RE.match(normalized):
        return RoundKind.LEAGUE
    return RoundKind.UNKNOWN


def is_group_round(label: str) -> bool:
    return classify_round(label) is RoundKind.GROUP


def is_knockout_round(label: str) -> bool:
    return classify_round(label) is RoundKind.KNOCKOUT


def league_round_label(round_number: int) -> str:
    return f"Round {round_number}"


def swiss_round_label(round_number: int) -> str:
    return f"Swiss Round {round_number}"


def parse_swiss_round_number(label: str) -> int | None:
    match = _SWISS_ROUND_RE.match(label.strip())
    return int(match.group(1)) if match else None


def get_knockout_round_name(team_count: int) -> str:
    """Name a knockout round after the number of teams still in the bracket."""
    match team_count:
        case 2:
            return FINAL
        case 4:
            return SEMI_FINALS
        case 8:
            return QUARTER_FINALS
        case _:
            return f"Round of {team_count}"


def get_round_rank(label: str) -> int:
    """
    Order rounds by how far the tournament has progressed when they are played.

    Group rounds all share the lowest rank, Swiss and league rounds rank by their number and
    knockout rounds rank above everything else, the Final highest. Unknown labels rank -1.
    """
    normalized = label.strip()
    match classify_round(normalized):
        case RoundKind.KNOCKOUT:
            if (rank := _KNOCKOUT_RANKS.get(normalized.lower())) is not None:
                return rank
            round_of = int(_ROUND_OF_RE.match(normalized).group(1))  # type: ignore[union-attr]
            return 100 + 64 // max(round_of, 1)
        case RoundKind.SWISS:
            return int(_SWISS_ROUND_RE.match(normalized).group(1))  # type: ignore[union-attr]
        case RoundKind.LEAGUE:
            return int(_LEAGUE_ROUND_RE.match(normalized).group(1))  # type: ignore[union-attr]
        case RoundKind.GROUP:
            return 0
        case _:
            return -1
