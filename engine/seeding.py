"""
Seeding and bracket construction.

Builds round-robin groups from the roster and the first round of each
knockout bracket from the group results. Slots left without an opponent
become byes; the athlete advances without playing.
"""

import logging
import math
import random
import string
from typing import Optional, Sequence

from config import RULES
from engine.championship import (
    Athlete,
    Bracket,
    Bye,
    Group,
    Match,
    Phase,
    new_id,
)
from engine.exceptions import BracketError, ChampionshipValidationError, FieldError
from engine.rules import RulesEngine

logger = logging.getLogger(__name__)


def group_name(index: int) -> str:
    """Group label for a zero-based index: A..Z, then AA, AB, ..."""
    letters = string.ascii_uppercase
    if index < len(letters):
        return f"Group {letters[index]}"
    return f"Group {letters[index // len(letters) - 1]}{letters[index % len(letters)]}"


def split_by_seed(athletes: Sequence[Athlete]) -> tuple[list[Athlete], list[Athlete]]:
    """Seeded athletes ordered by seed number, and the rest in roster order."""
    seeded = sorted((a for a in athletes if a.is_seeded), key=lambda a: a.seed_number or 0)
    unseeded = [a for a in athletes if not a.is_seeded]
    return seeded, unseeded


# ============ Groups ============


def generate_group_matches(group: Group) -> list[Match]:
    """Round-robin: each athlete plays every other athlete once."""
    matches = []
    for i, athlete1 in enumerate(group.athletes):
        for athlete2 in group.athletes[i + 1:]:
            matches.append(Match(
                id=new_id(),
                player1_id=athlete1.id,
                player2_id=athlete2.id,
                player1=athlete1,
                player2=athlete2,
                phase=Phase.GROUPS,
                group_id=group.id,
            ))
    return matches


def _check_group_sizes(groups: Sequence[Group]) -> None:
    errors = [
        FieldError(g.name, f"A group needs at least {RULES.min_group_members} athletes")
        for g in groups
        if len(g.athletes) < RULES.min_group_members
    ]
    if errors:
        raise ChampionshipValidationError(errors)


def generate_groups(athletes: Sequence[Athlete], group_size: int,
                    qualification_spots: int) -> list[Group]:
    """
    Distribute the roster into groups and schedule their matches.

    Seeded athletes are dealt one per group in seed order; unseeded
    athletes continue the same cycle, so group sizes differ by at most one.

    Example with 7 athletes (2 seeded), group size 4:
    Group A: S1, U1, U3, U5
    Group B: S2, U2, U4
    """
    if not athletes:
        raise ChampionshipValidationError.single("athletes", "No athletes registered")
    if group_size <= 0:
        raise ChampionshipValidationError.single("group_size", "Group size must be positive")

    num_groups = math.ceil(len(athletes) / group_size)
    groups = [
        Group(id=new_id(), name=group_name(i), qualification_spots=qualification_spots)
        for i in range(num_groups)
    ]

    seeded, unseeded = split_by_seed(athletes)
    for index, athlete in enumerate(seeded + unseeded):
        groups[index % num_groups].athletes.append(athlete)

    _check_group_sizes(groups)

    for group in groups:
        group.matches = generate_group_matches(group)

    logger.info(
        "Generated %d groups for %d athletes (%d seeded)",
        num_groups, len(athletes), len(seeded),
    )
    return groups


def create_manual_groups(athletes: Sequence[Athlete], assignments: Sequence[tuple[str, Sequence[str]]],
                         qualification_spots: int) -> list[Group]:
    """
    Build groups from an explicit athlete assignment.

    Args:
        athletes: The championship roster
        assignments: (group name, athlete ids) pairs
        qualification_spots: Athletes qualifying from each group
    """
    roster = {a.id: a for a in athletes}
    errors = []
    seen: dict[str, str] = {}

    for name, athlete_ids in assignments:
        if len(athlete_ids) < RULES.min_group_members:
            errors.append(FieldError(name, f"A group needs at least {RULES.min_group_members} athletes"))
        for athlete_id in athlete_ids:
            if athlete_id not in roster:
                errors.append(FieldError(name, f"Unknown athlete {athlete_id}"))
            elif athlete_id in seen:
                errors.append(FieldError(
                    name, f"{roster[athlete_id].name} is already assigned to {seen[athlete_id]}"
                ))
            else:
                seen[athlete_id] = name

    missing = [a.name for a in athletes if a.id not in seen]
    if missing:
        errors.append(FieldError("groups", "Athletes without a group: " + ", ".join(missing)))
    if errors:
        raise ChampionshipValidationError(errors)

    groups = []
    for name, athlete_ids in assignments:
        group = Group(
            id=new_id(),
            name=name,
            qualification_spots=qualification_spots,
            athletes=[roster[i] for i in athlete_ids],
        )
        group.matches = generate_group_matches(group)
        groups.append(group)

    logger.info("Created %d manual groups", len(groups))
    return groups


def distribute_remaining_athletes(groups: Sequence[Group], athletes: Sequence[Athlete],
                                  rng: Optional[random.Random] = None) -> list[Group]:
    """
    Place late registrations into existing groups at random.

    Each affected group gets its round robin regenerated. Returns the
    groups that changed.
    """
    rng = rng or random.Random()
    if not groups:
        raise ChampionshipValidationError.single("groups", "No groups to distribute athletes into")

    changed: dict[str, Group] = {}
    for athlete in athletes:
        group = rng.choice(list(groups))
        group.athletes.append(athlete)
        changed[group.id] = group
        logger.info("Placed late athlete %s in %s", athlete.name, group.name)

    for group in changed.values():
        group.matches = generate_group_matches(group)
        group.standings = []
        group.is_completed = False
    return list(changed.values())


# ============ Qualification ============


def qualified_by_position(groups: Sequence[Group]) -> list[list[Athlete]]:
    """Qualified athletes bucketed by finishing position (index 0 = winners)."""
    by_position: list[list[Athlete]] = []
    for group in groups:
        for standing in group.standings:
            if not standing.qualified:
                continue
            while len(by_position) < standing.position:
                by_position.append([])
            by_position[standing.position - 1].append(standing.athlete)
    return by_position


def order_qualifiers(groups: Sequence[Group]) -> list[Athlete]:
    """
    Qualifiers in draw order.

    Each group winner is followed by the runner-up of the next group
    (the last winner takes the first group's runner-up), so adjacent
    slots never pair two athletes from the same group. Lower positions
    are appended in group order.

    Example with 3 groups: A1, B2, B1, C2, C1, A2
    """
    buckets = qualified_by_position(groups)
    if not buckets:
        return []

    winners = buckets[0]
    runners_up = buckets[1] if len(buckets) > 1 else []
    ordered = []
    for index, winner in enumerate(winners):
        ordered.append(winner)
        if runners_up:
            runner_up = runners_up[(index + 1) % len(runners_up)]
            if runner_up not in ordered:
                ordered.append(runner_up)

    # Runners-up left over when groups have uneven qualifier counts
    ordered.extend(a for a in runners_up if a not in ordered)
    for bucket in buckets[2:]:
        ordered.extend(bucket)
    return ordered


def eliminated_athletes(groups: Sequence[Group]) -> list[Athlete]:
    """Athletes who finished outside the qualification spots."""
    return [s.athlete for g in groups for s in g.standings if not s.qualified]


# ============ Knockout ============


def seed_positions(size: int, seeds: int, byes: int = 0) -> list[int]:
    """
    Slot index for each seed in a bracket of `size` slots.

    Seeds 1-4 take the canonical positions (top, bottom, and either side
    of the middle). Later seeds go to the quarter midpoints, moving
    forward to the next free slot when taken. The first `byes` seeds get
    a slot whose partner stays empty, and no one is placed in an empty
    partner slot.
    """
    canonical = [0, size - 1, size // 2 - 1, size // 2]
    quarter_points = [size // 8, 3 * size // 8, 5 * size // 8, 7 * size // 8]
    taken: list[int] = []
    blocked: set[int] = set()

    for seed in range(min(seeds, size)):
        if seed < len(canonical):
            slot = canonical[seed]
        else:
            slot = quarter_points[(seed - len(canonical)) % len(quarter_points)]
        gets_bye = seed < byes
        while slot in taken or slot in blocked or (gets_bye and slot ^ 1 in taken):
            slot = (slot + 1) % size
        taken.append(slot)
        if gets_bye:
            blocked.add(slot ^ 1)

    return taken


def fill_slots(size: int, ranked: Sequence[Athlete], others: Sequence[Athlete]) -> list[Optional[Athlete]]:
    """
    Lay athletes out over `size` bracket slots.

    `ranked` athletes take the seed positions in order and the best of
    them receive the byes, one per pair, so no pair is left empty.
    `others` fill the remaining slots in the given order.
    """
    byes = size - len(ranked) - len(others)
    slots: list[Optional[Athlete]] = [None] * size
    positions = seed_positions(size, len(ranked), byes)
    for athlete, slot in zip(ranked, positions):
        slots[slot] = athlete
    empty = {slot ^ 1 for slot in positions[:byes]}

    remaining = iter(others)
    for slot in range(size):
        if slots[slot] is None and slot not in empty:
            slots[slot] = next(remaining, None)

    return slots


def _knockout_match(athlete1: Athlete, athlete2: Athlete, bracket: Bracket,
                    size: int, position: int) -> Match:
    return Match(
        id=new_id(),
        player1_id=athlete1.id,
        player2_id=athlete2.id,
        player1=athlete1,
        player2=athlete2,
        phase=Phase.KNOCKOUT,
        bracket=bracket,
        round=RulesEngine.round_for_size(size),
        position=position,
    )


def pair_slots(slots: Sequence[Optional[Athlete]], bracket: Bracket) -> tuple[list[Match], list[Bye]]:
    """Pair adjacent slots into first-round matches; lone athletes get byes."""
    size = len(slots)
    knockout_round = RulesEngine.round_for_size(size)
    matches, byes = [], []

    for position in range(size // 2):
        athlete1, athlete2 = slots[2 * position], slots[2 * position + 1]
        if athlete1 and athlete2:
            matches.append(_knockout_match(athlete1, athlete2, bracket, size, position))
        elif athlete1 or athlete2:
            lone = athlete1 or athlete2
            byes.append(Bye(bracket=bracket, round=knockout_round, position=position, athlete_id=lone.id))
            logger.info("%s receives a bye in %s", lone.name, knockout_round.label(bracket))

    return matches, byes


def generate_main_knockout_matches(qualifiers: Sequence[Athlete]) -> tuple[list[Match], list[Bye]]:
    """
    Build the first round of the main bracket.

    Seeded qualifiers take the seed positions in seed order. Byes go to the
    seeds first, then to the first-listed unseeded qualifiers; everyone
    else fills the remaining slots in the given order.
    """
    if len(qualifiers) < RULES.min_athletes_for_knockout:
        raise BracketError(
            f"At least {RULES.min_athletes_for_knockout} qualifiers are needed "
            f"for a knockout, got {len(qualifiers)}"
        )

    size = RulesEngine.bracket_size(len(qualifiers))
    RulesEngine.round_for_size(size)

    seeded, unseeded = split_by_seed(qualifiers)
    extra_byes = max(0, size - len(qualifiers) - len(seeded))
    slots = fill_slots(size, seeded + unseeded[:extra_byes], unseeded[extra_byes:])

    matches, byes = pair_slots(slots, Bracket.MAIN)
    logger.info(
        "Main bracket: %d qualifiers, size %d, %d matches, %d byes",
        len(qualifiers), size, len(matches), len(byes),
    )
    return matches, byes


def generate_second_division_matches(eliminated: Sequence[Athlete],
                                     rng: Optional[random.Random] = None) -> tuple[list[Match], list[Bye]]:
    """
    Build the first round of the second-division bracket.

    Athletes are shuffled with no seeding. Fewer than two athletes means
    no bracket at all.
    """
    if len(eliminated) < 2:
        logger.warning("Second division skipped: %d eliminated athletes", len(eliminated))
        return [], []

    rng = rng or random.Random()
    shuffled = list(eliminated)
    rng.shuffle(shuffled)

    size = RulesEngine.bracket_size(len(shuffled), minimum=2)
    bye_count = size - len(shuffled)
    slots = fill_slots(size, shuffled[:bye_count], shuffled[bye_count:])

    matches, byes = pair_slots(slots, Bracket.SECOND_DIVISION)
    logger.info(
        "Second division: %d athletes, size %d, %d matches, %d byes",
        len(eliminated), size, len(matches), len(byes),
    )
    return matches, byes
