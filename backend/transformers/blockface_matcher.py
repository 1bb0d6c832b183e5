"""Group sign records into blockfaces and snap each group to a centerline"""
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from errors import NoMatch
from .line_geometry import build_blockface_line, min_distance_to_line
from .records import BlockfaceGroup, BlockfaceLine, CenterlineFeature, SignRecord
from .street_names import normalize_street_name

logger = logging.getLogger(__name__)


def blockface_key(record: SignRecord) -> Tuple[str, ...]:
    """Composite key: normalized on/from/to streets, side letter, raw rule text"""
    return (
        normalize_street_name(record.on_street),
        normalize_street_name(record.from_street),
        normalize_street_name(record.to_street),
        (record.side or "").strip().upper(),
        (record.rule_text or "").strip(),
    )


def group_records(records: Iterable[SignRecord]) -> List[BlockfaceGroup]:
    """Bucket records by exact key equality, keeping first-seen order"""
    groups: Dict[Tuple[str, ...], BlockfaceGroup] = {}
    for record in records:
        key = blockface_key(record)
        group = groups.get(key)
        if group is None:
            group = groups[key] = BlockfaceGroup(key=key)
        group.records.append(record)
    return list(groups.values())


def index_centerlines(features: Iterable[CenterlineFeature]) -> Dict[str, List[CenterlineFeature]]:
    """Normalized street name -> features, in input order"""
    by_name: Dict[str, List[CenterlineFeature]] = defaultdict(list)
    for feature in features:
        key = normalize_street_name(feature.name)
        if key and len(feature.coordinates) >= 2:
            by_name[key].append(feature)
    return by_name


def select_centerline(
    group: BlockfaceGroup, candidates: List[CenterlineFeature]
) -> CenterlineFeature:
    """
    Candidate whose nearest segment is closest to the group centroid.

    The first candidate wins ties. Raises NoMatch when there are none.
    """
    if not candidates:
        raise NoMatch(f"No centerline named {group.key[0]!r}")

    centroid = group.centroid
    best: Optional[CenterlineFeature] = None
    best_score = 0.0
    for candidate in candidates:
        score = min_distance_to_line(centroid, candidate.coordinates)
        if best is None or score < best_score:
            best, best_score = candidate, score
    return best


@dataclass
class MatchStats:
    groups: int = 0
    matched: int = 0
    unmatched_streets: Dict[str, int] = field(default_factory=dict)

    @property
    def unmatched(self) -> int:
        return self.groups - self.matched


class BlockfaceMatcher:
    """
    Fuses the sign records and centerlines currently in view into
    BlockfaceLines.
    """

    def __init__(self):
        self.stats = MatchStats()

    def match_groups(
        self, groups: List[BlockfaceGroup], features: Iterable[CenterlineFeature]
    ) -> List[Tuple[BlockfaceGroup, CenterlineFeature]]:
        by_name = index_centerlines(features)
        pairs = []
        self.stats.groups += len(groups)

        for group in groups:
            try:
                chosen = select_centerline(group, by_name.get(group.key[0], []))
            except NoMatch:
                street = group.key[0]
                self.stats.unmatched_streets[street] = self.stats.unmatched_streets.get(street, 0) + 1
                continue
            pairs.append((group, chosen))

        self.stats.matched += len(pairs)
        if self.stats.unmatched:
            logger.debug(
                f"{self.stats.unmatched} of {self.stats.groups} groups had no centerline "
                f"({len(self.stats.unmatched_streets)} streets)"
            )
        return pairs

    def build_lines(
        self, records: Iterable[SignRecord], features: Iterable[CenterlineFeature]
    ) -> List[BlockfaceLine]:
        """Group, match, slice and offset. Unmatched groups are dropped."""
        groups = group_records(records)
        lines = []
        for group, centerline in self.match_groups(groups, features):
            line = build_blockface_line(group, centerline, index=len(lines))
            if line is not None:
                lines.append(line)

        logger.info(f"Built {len(lines)} blockface lines from {len(groups)} groups")
        return lines
