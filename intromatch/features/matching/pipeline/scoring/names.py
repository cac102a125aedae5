"""
Fuzzy person-name matching for the name-mention boost.
"""

import re
from dataclasses import dataclass

NICKNAMES: dict[str, tuple[str, ...]] = {
    "matt": ("matthew", "mat"),
    "matthew": ("matt", "mat"),
    "rob": ("robert", "bob", "bobby"),
    "robert": ("rob", "bob", "bobby"),
    "bob": ("robert", "rob", "bobby"),
    "mike": ("michael", "mick"),
    "michael": ("mike", "mick"),
    "jim": ("james", "jimmy"),
    "james": ("jim", "jimmy"),
    "bill": ("william", "will", "billy"),
    "william": ("bill", "will", "billy"),
    "tom": ("thomas", "tommy"),
    "thomas": ("tom", "tommy"),
    "joe": ("joseph", "joey"),
    "joseph": ("joe", "joey"),
    "dan": ("daniel", "danny"),
    "daniel": ("dan", "danny"),
    "chris": ("christopher", "kristopher"),
    "christopher": ("chris",),
    "alex": ("alexander", "alexandra"),
    "alexander": ("alex",),
    "sam": ("samuel", "samantha"),
    "samuel": ("sam",),
    "nick": ("nicholas", "nicolas"),
    "nicholas": ("nick", "nicolas"),
    "steve": ("steven", "stephen"),
    "steven": ("steve", "stephen"),
    "stephen": ("steve", "steven"),
    "tony": ("anthony",),
    "anthony": ("tony",),
    "dave": ("david",),
    "david": ("dave",),
    "ed": ("edward", "eddie"),
    "edward": ("ed", "eddie"),
    "sara": ("sarah",),
    "sarah": ("sara",),
    "kate": ("katherine", "catherine", "kathy"),
    "katherine": ("kate", "kathy", "katie"),
    "liz": ("elizabeth", "beth", "lizzy"),
    "elizabeth": ("liz", "beth", "lizzy"),
    "jen": ("jennifer", "jenny"),
    "jennifer": ("jen", "jenny"),
}


@dataclass(frozen=True, slots=True)
class NameMatch:
    matched: bool
    score: float
    match_type: str

    @classmethod
    def none(cls) -> "NameMatch":
        return cls(False, 0.0, "none")


def levenshtein_distance(a: str, b: str) -> int:
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            cost = 0 if char_a == char_b else 1
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost))
        previous = current
    return previous[-1]


def _is_nickname(a: str, b: str) -> bool:
    return b in NICKNAMES.get(a, ()) or a in NICKNAMES.get(b, ())


def fuzzy_name_match(mentioned_name: str, contact_name: str) -> NameMatch:
    mentioned = mentioned_name.lower().strip()
    contact = contact_name.lower().strip()
    if not mentioned or not contact:
        return NameMatch.none()

    if mentioned == contact:
        return NameMatch(True, 1.0, "exact")

    # "Roy" inside "Roy E. Bahat"
    if mentioned in contact or contact in mentioned:
        return NameMatch(True, 0.95, "contains")

    mentioned_parts = [part for part in re.split(r"\s+", mentioned) if len(part) > 1]
    contact_parts = [part for part in re.split(r"\s+", contact) if len(part) > 1]

    if len(mentioned_parts) == 1 and contact_parts:
        single = mentioned_parts[0]
        contact_first = contact_parts[0]
        if single == contact_first:
            return NameMatch(True, 0.7, "first-only")
        if _is_nickname(single, contact_first):
            return NameMatch(True, 0.65, "first-nickname")
        return NameMatch.none()

    if len(mentioned_parts) < 2 or not contact_parts:
        return NameMatch.none()

    mentioned_first, mentioned_last = mentioned_parts[0], mentioned_parts[-1]
    contact_first, contact_last = contact_parts[0], contact_parts[-1]

    first_matches = (
        mentioned_first == contact_first
        or contact_first.startswith(mentioned_first)
        or mentioned_first.startswith(contact_first)
        or _is_nickname(mentioned_first, contact_first)
    )
    last_matches = levenshtein_distance(mentioned_last, contact_last) <= 2

    if first_matches and last_matches:
        return NameMatch(True, 0.9, "fuzzy-both")

    similarity = 1 - levenshtein_distance(mentioned, contact) / max(len(mentioned), len(contact))
    if similarity >= 0.8:
        return NameMatch(True, similarity, "levenshtein")

    return NameMatch.none()


def best_name_match(mentioned_names: list[str], candidate_names: list[str]) -> NameMatch:
    """Highest-scoring match over every (mentioned, candidate) pair."""
    best = NameMatch.none()
    for mentioned in mentioned_names:
        for candidate in candidate_names:
            result = fuzzy_name_match(mentioned, candidate)
            if result.matched and result.score > best.score:
                best = result
    return best
