"""
Auto-mapper: proposes a field -> column mapping for detected headers.

Matching is an ordered chain of matcher strategies (exact label, learned
alias, fuzzy containment). Each strategy scores a (field, column) pair or
declines; the best score per pair wins, ties going to the earlier strategy.
Pairs are then assigned greedily across the whole schema by descending
confidence, so a column claimed by a stronger match is never handed to a
second field.
"""
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from payroll_import.core.logging_config import logger
from payroll_import.models.mapping_configuration import MappingType
from payroll_import.schemas.column_mapping import (
    AutoMapResult,
    ColumnMapping,
    ConfidenceSummary,
    FieldMapping,
    MappingConflict,
)
from payroll_import.schemas.field_schema import FieldSpec
from payroll_import.services.field_schema import get_field_schema
from payroll_import.utils.headers import normalize_header, contains_either_way

EXACT_CONFIDENCE = 100
FUZZY_CONFIDENCE = 60
MIN_FUZZY_LENGTH = 2

HIGH_CONFIDENCE = 80
MEDIUM_CONFIDENCE = 50


@dataclass(frozen=True)
class KnownAlias:
    field_key: str
    alias_text: str
    confidence_score: int


def as_known_aliases(rows: Iterable) -> List[KnownAlias]:
    """Convert alias rows (ORM or schema objects) to KnownAlias, dropping inactive ones"""
    return [
        KnownAlias(row.field_key, row.alias_text, int(row.confidence_score))
        for row in rows
        if getattr(row, "is_active", True)
    ]


class ExactMatcher:
    mapping_type = MappingType.exact

    def match(self, field: FieldSpec, column: str) -> Optional[int]:
        normalized = normalize_header(column)
        if not normalized:
            return None
        if normalized == normalize_header(field.label) or normalized == field.key.casefold():
            return EXACT_CONFIDENCE
        return None


class AliasMatcher:
    mapping_type = MappingType.alias

    def __init__(self, aliases: Iterable[KnownAlias]):
        self._scores: Dict[str, Dict[str, int]] = {}
        for alias in aliases:
            by_text = self._scores.setdefault(alias.field_key, {})
            key = normalize_header(alias.alias_text)
            by_text[key] = max(by_text.get(key, 0), alias.confidence_score)

    def match(self, field: FieldSpec, column: str) -> Optional[int]:
        normalized = normalize_header(column)
        if not normalized:
            return None
        return self._scores.get(field.key, {}).get(normalized)


class FuzzyMatcher:
    mapping_type = MappingType.fuzzy

    def match(self, field: FieldSpec, column: str) -> Optional[int]:
        if contains_either_way(column, field.label, MIN_FUZZY_LENGTH):
            return FUZZY_CONFIDENCE
        return None


def build_matchers(aliases: Iterable[KnownAlias] = ()) -> list:
    """Matcher chain in cascade order"""
    return [ExactMatcher(), AliasMatcher(aliases), FuzzyMatcher()]


@dataclass(frozen=True)
class _Candidate:
    confidence: int
    rank: int  # Position of the strategy in the cascade
    field_index: int
    column_index: int
    field_key: str
    column: str
    mapping_type: MappingType

    @property
    def sort_key(self):
        return (-self.confidence, self.rank, self.field_index, self.column_index)


def _best_match(matchers: list, field: FieldSpec, column: str):
    best = None
    for rank, matcher in enumerate(matchers):
        confidence = matcher.match(field, column)
        if confidence is None:
            continue
        if best is None or confidence > best[0]:
            best = (confidence, rank, matcher.mapping_type)
    return best


def propose_assignments(
    columns: Sequence[str],
    fields: Sequence[FieldSpec],
    matchers: list,
) -> Dict[str, FieldMapping]:
    """
    Greedy, injective assignment of columns to fields.
    
    Returns:
        {field_key: FieldMapping} in descending-confidence assignment order
    """
    candidates: List[_Candidate] = []
    for field_index, field in enumerate(fields):
        for column_index, column in enumerate(columns):
            best = _best_match(matchers, field, column)
            if best is None:
                continue
            confidence, rank, mapping_type = best
            candidates.append(_Candidate(
                confidence=confidence,
                rank=rank,
                field_index=field_index,
                column_index=column_index,
                field_key=field.key,
                column=column,
                mapping_type=mapping_type,
            ))
    
    candidates.sort(key=lambda c: c.sort_key)
    assigned: Dict[str, FieldMapping] = {}
    claimed = set()
    for candidate in candidates:
        if candidate.field_key in assigned or candidate.column in claimed:
            continue
        assigned[candidate.field_key] = FieldMapping(
            field_key=candidate.field_key,
            column_name=candidate.column,
            confidence_score=candidate.confidence,
            mapping_type=candidate.mapping_type,
        )
        claimed.add(candidate.column)
        logger.debug(
            f"Auto-mapped field '{candidate.field_key}' -> column '{candidate.column}' "
            f"({candidate.mapping_type.value}, {candidate.confidence})"
        )
    return assigned


def summarize_confidence(mappings: Iterable[FieldMapping]) -> ConfidenceSummary:
    summary = ConfidenceSummary()
    for mapping in mappings:
        if mapping.confidence_score >= HIGH_CONFIDENCE:
            summary.high_confidence += 1
        elif mapping.confidence_score >= MEDIUM_CONFIDENCE:
            summary.medium_confidence += 1
        else:
            summary.low_confidence += 1
    return summary


def build_result(
    columns: Sequence[str],
    assignments: Dict[str, FieldMapping],
    field_schema: Sequence[FieldSpec],
) -> AutoMapResult:
    """Wrap assignments (in schema order) with unmapped lists, confidence and conflicts"""
    ordered = {field.key: assignments[field.key] for field in field_schema if field.key in assignments}
    mapping = ColumnMapping(assignments=ordered)
    claimed = {m.column_name for m in ordered.values()}
    conflicts = [
        MappingConflict(
            type="required_field_missing",
            field_key=field.key,
            message=f"Required field '{field.label}' is not mapped to any column",
        )
        for field in field_schema
        if field.required and field.key not in ordered
    ]
    return AutoMapResult(
        mapping=mapping,
        detected_columns=list(columns),
        unmapped_fields=[field.key for field in field_schema if field.key not in ordered],
        unmapped_columns=[column for column in columns if column not in claimed],
        confidence_summary=summarize_confidence(ordered.values()),
        conflicts=conflicts,
    )


def auto_map_columns(
    columns: Sequence[str],
    field_schema: Optional[Sequence[FieldSpec]] = None,
    aliases: Iterable[KnownAlias] = (),
) -> AutoMapResult:
    """
    Propose a mapping for detected columns.
    
    Args:
        columns: Detected header names of one file
        field_schema: Fields to map (defaults to the payroll registry)
        aliases: Learned aliases to consult
        
    Returns:
        AutoMapResult; unmatched fields and columns are left unassigned
    """
    field_schema = list(field_schema) if field_schema is not None else get_field_schema()
    assignments = propose_assignments(columns, field_schema, build_matchers(aliases))
    result = build_result(columns, assignments, field_schema)
    logger.info(
        f"Auto-mapped {len(result.mapping.assignments)}/{len(field_schema)} fields "
        f"from {len(columns)} columns"
    )
    return result
