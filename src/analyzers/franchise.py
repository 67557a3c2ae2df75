"""Franchise and sequel heuristics shared by the content and temporal analyzers.

Title patterns are a weighted signal, not ground truth: a roman numeral in
a title raises the odds of a sequel, a shared collection id settles it.
"""

from dataclasses import dataclass, field
import re

from ..entities.model import Entity

SEQUEL_NUMBER = re.compile(r"\b(ii|iii|iv|v|vi|vii|viii|ix|x|\d+)\b")
SEQUEL_WORD = re.compile(r"\b(part|chapter|episode|volume|book)\s*\d+")
FRANCHISE_WORD = re.compile(r"(saga|chronicles|trilogy|series|collection|universe)")
REBOOT_WORD = re.compile(r"(reboot|remake|reimagining|retelling|origins?|begins?)")
DIRECT_SEQUEL = re.compile(r"\b(ii|2|part.2|chapter.2)\b")
PREQUEL_WORD = re.compile(r"(prequel|origins?|begins?|first|before)")
SPINOFF_WORD = re.compile(r"(spinoff|spin.off|companion|side.story)")


@dataclass(frozen=True)
class FranchiseInfo:
    is_franchise: bool = False
    is_sequel: bool = False
    is_reboot: bool = False
    name: str | None = None
    sequel_number: str | None = None
    indicators: tuple[str, ...] = field(default=())
    is_direct_sequel: bool = False
    is_prequel: bool = False
    is_spinoff: bool = False

    def to_record(self) -> dict:
        return {
            "is_franchise": self.is_franchise,
            "is_sequel": self.is_sequel,
            "is_reboot": self.is_reboot,
            "name": self.name,
            "sequel_number": self.sequel_number,
            "indicators": list(self.indicators),
        }


def base_title(title: str) -> str:
    """Strip sequel and franchise markers, leaving the series name."""
    for pattern in (SEQUEL_WORD, SEQUEL_NUMBER, FRANCHISE_WORD, REBOOT_WORD):
        title = pattern.sub("", title)
    return " ".join(title.split())


def analyze_franchise(entity: Entity) -> FranchiseInfo:
    title = entity.name.lower()
    overview = entity.description.lower()
    content = entity.text_blob()

    is_franchise = is_sequel = is_reboot = False
    sequel_number = None
    indicators: list[str] = []

    number = SEQUEL_NUMBER.search(title)
    if number:
        is_sequel = is_franchise = True
        sequel_number = number.group(1)
        indicators.append("sequel_number")
    if SEQUEL_WORD.search(title):
        is_sequel = is_franchise = True
        indicators.append("sequel_word")
    if FRANCHISE_WORD.search(title):
        is_franchise = True
        indicators.append("franchise_indicator")
    if REBOOT_WORD.search(title) or REBOOT_WORD.search(overview):
        is_reboot = is_franchise = True
        indicators.append("reboot_indicator")

    name = base_title(title) if is_franchise else None
    if entity.collection_id is not None:
        is_franchise = True
        name = entity.collection_name or name
        indicators.append("collection_member")

    return FranchiseInfo(
        is_franchise=is_franchise,
        is_sequel=is_sequel,
        is_reboot=is_reboot,
        name=name,
        sequel_number=sequel_number,
        indicators=tuple(indicators),
        is_direct_sequel=bool(DIRECT_SEQUEL.search(title)),
        is_prequel=bool(PREQUEL_WORD.search(content)),
        is_spinoff=bool(SPINOFF_WORD.search(content)),
    )


def _clean(name: str) -> str:
    return re.sub(r"[^a-z0-9]", "", name.lower())


def _names_match(a: str, b: str) -> bool:
    a, b = _clean(a), _clean(b)
    if not a or not b:
        return False
    return a in b or b in a


def _share_title_word(a: Entity, b: Entity) -> bool:
    words_a = {w for w in a.name.lower().split() if len(w) > 2}
    words_b = {w for w in b.name.lower().split() if len(w) > 2}
    return bool(words_a & words_b)


def are_franchise_related(a: Entity, b: Entity, info_a: FranchiseInfo, info_b: FranchiseInfo) -> bool:
    if a.collection_id is not None and b.collection_id is not None:
        return a.collection_id == b.collection_id
    if info_a.name and info_b.name:
        return _names_match(info_a.name, info_b.name)
    if info_a.is_franchise and info_b.is_franchise:
        return _share_title_word(a, b)
    return False


def franchise_relation(info_a: FranchiseInfo, info_b: FranchiseInfo) -> str:
    if info_a.is_sequel and info_b.is_sequel:
        return "sequel_pair"
    if info_a.is_reboot or info_b.is_reboot:
        return "reboot_relation"
    if info_a.is_direct_sequel or info_b.is_direct_sequel:
        return "direct_sequel"
    return "franchise_members"


def sequel_relation(info_a: FranchiseInfo, info_b: FranchiseInfo) -> str:
    if info_a.is_prequel or info_b.is_prequel:
        return "prequel_relation"
    if info_a.is_spinoff or info_b.is_spinoff:
        return "spinoff_relation"
    return franchise_relation(info_a, info_b)
