"""
Device Factory Management - Listing Query Builder
Version: 1.1.0

Changelog:
v1.1.0 (2026-03-04): Boolean equality for isStolen/isFaulty; range bounds
                      converted from epoch millis to stored timestamp text
v1.0.0 (2026-02-27): Initial filter/sort/paging query builder

Turns the listing's string parameters into parameterized SQL. Only column
names from column_mappings are ever spliced into a statement; every user
supplied value travels as a bound parameter.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, List, Tuple, Mapping

from models.device import DeviceState, StateCount
from services.column_mappings import (
    CONTAINS_LIKE_COLUMNS, BOOLEAN_FILTER_FIELDS, RANGE_COLUMNS,
    DEVICE_DETAILS_SORT_COLUMNS, lookup_field,
)
from services.exceptions import InvalidFilterError
from services import validators

logger = logging.getLogger(__name__)

TABLE = "device_factory_data"

# Request keys, matched case-insensitively
CONTAINS_LIKE_FIELDS = "containslikefields"
CONTAINS_LIKE_VALUES = "containslikevalues"
RANGE_FIELDS = "rangefields"
RANGE_VALUES = "rangevalues"
SORT_BY = "sortby"
SORT_BY_PARAM = "sortbyparam"
SORTING_ORDER = "sortingorder"
IS_DETAILS_REQUIRED = "isdetailsrequired"
PAGE = "page"
SIZE = "size"


@dataclass(frozen=True)
class QueryFilter:
    """Validated listing parameters"""
    contains_like_fields: List[str] = field(default_factory=list)
    contains_like_values: List[str] = field(default_factory=list)
    range_fields: List[str] = field(default_factory=list)
    range_values: List[str] = field(default_factory=list)
    sort_by: Optional[str] = None
    sorting_order: Optional[str] = None
    is_details_required: bool = False
    page: int = 1
    size: int = 20

    @property
    def has_contains_like(self) -> bool:
        return bool(self.contains_like_fields)

    @property
    def has_range(self) -> bool:
        return bool(self.range_fields)

    @classmethod
    def from_request(cls, params: Mapping[str, Optional[str]]) -> "QueryFilter":
        """
        Parse and validate the raw request map.

        Raises:
            InvalidFilterError: disallowed or mismatched filter/sort fields
            PageParamError, SizeParamError: bad pagination values
        """
        raw = {key.lower(): value for key, value in params.items()}
        sort_by = raw.get(SORT_BY) or raw.get(SORT_BY_PARAM)
        sorting_order = raw.get(SORTING_ORDER)

        is_details_required = validators.validate_sort_request(
            sort_by, sorting_order, raw.get(IS_DETAILS_REQUIRED))

        contains_fields = validators.split_list(raw.get(CONTAINS_LIKE_FIELDS))
        contains_values = validators.split_list(raw.get(CONTAINS_LIKE_VALUES))
        validators.validate_contains_like(contains_fields, contains_values)
        contains_fields = [lookup_field(CONTAINS_LIKE_COLUMNS, f) for f in contains_fields]
        for name, value in zip(contains_fields, contains_values):
            if name in BOOLEAN_FILTER_FIELDS and value.lower() not in ("true", "false"):
                raise InvalidFilterError("Invalid containslikevalue is passed", code="dfd-023")

        range_fields = validators.split_list(raw.get(RANGE_FIELDS))
        range_values = validators.split_list(raw.get(RANGE_VALUES))
        validators.validate_range(range_fields, range_values)
        range_fields = [lookup_field(RANGE_COLUMNS, f) for f in range_fields]

        page = validators.resolve_page(raw.get(PAGE))
        size = validators.resolve_size(raw.get(SIZE))

        return cls(
            contains_like_fields=contains_fields,
            contains_like_values=contains_values,
            range_fields=range_fields,
            range_values=range_values,
            sort_by=lookup_field(DEVICE_DETAILS_SORT_COLUMNS, sort_by) if sort_by else None,
            sorting_order=sorting_order,
            is_details_required=is_details_required,
            page=page,
            size=size,
        )


def escape_like(value: str) -> str:
    """Neutralize LIKE wildcards; pairs with ESCAPE '\\'"""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def contains_like_clause(fields: List[str], values: List[str]) -> Tuple[List[str], list]:
    conditions = []
    params = []
    for name, value in zip(fields, values):
        column = CONTAINS_LIKE_COLUMNS[name]
        if name in BOOLEAN_FILTER_FIELDS:
            conditions.append(f"{column} = ?")
            params.append(1 if value.lower() == "true" else 0)
        else:
            conditions.append(f"{column} LIKE ? ESCAPE '\\'")
            params.append(f"%{escape_like(value)}%")
    return conditions, params


def range_clause(fields: List[str], values: List[str]) -> Tuple[List[str], list]:
    conditions = []
    params = []
    for name, value in zip(fields, values):
        start, end = value.split("_")
        conditions.append(f"{RANGE_COLUMNS[name]} BETWEEN ? AND ?")
        params.extend([
            validators.epoch_millis_to_stored(int(start)),
            validators.epoch_millis_to_stored(int(end)),
        ])
    return conditions, params


def build_where(query: QueryFilter) -> Tuple[str, list]:
    """Returns (' WHERE ...', params), or ('', []) when unfiltered"""
    conditions, params = contains_like_clause(
        query.contains_like_fields, query.contains_like_values)
    range_conditions, range_params = range_clause(query.range_fields, query.range_values)
    conditions += range_conditions
    params += range_params
    if not conditions:
        return "", []
    return " WHERE " + " AND ".join(conditions), params


def build_order_by(sort_by: Optional[str], order: Optional[str],
                   mapping: Mapping[str, str], qualify=None,
                   default_column: str = "id") -> str:
    """
    ORDER BY tail from a sort table; primary key ascending when unsorted.

    `qualify` optionally maps a column to its table-qualified name for
    joined queries.
    """
    qualify = qualify or (lambda column: column)
    key = lookup_field(mapping, sort_by) if sort_by else None
    if key is None:
        return f" ORDER BY {qualify(default_column)} ASC"
    direction = "DESC" if order and order.lower() == "desc" else "ASC"
    return f" ORDER BY {qualify(mapping[key])} {direction}"


def pagination(page: int, size: int) -> Tuple[str, list]:
    return " LIMIT ? OFFSET ?", [size, (page - 1) * size]


def count_query(where: str) -> str:
    return f"SELECT COUNT(*) FROM {TABLE}{where}"


def page_query(where: str, order_by: str, page: int, size: int) -> Tuple[str, list]:
    """Detail page statement plus the LIMIT/OFFSET params to append"""
    tail, tail_params = pagination(page, size)
    return f"SELECT * FROM {TABLE}{where}{order_by}{tail}", tail_params


def aggregate_query(where: str) -> str:
    return f"SELECT state, COUNT(state) AS count FROM {TABLE}{where} GROUP BY state"


def to_state_count(rows) -> StateCount:
    """
    Fold GROUP BY state rows into the four reported buckets.

    States outside PROVISIONED/ACTIVE/STOLEN/FAULTY are dropped.
    """
    counts = StateCount()
    buckets = {
        DeviceState.PROVISIONED.value: "provisioned",
        DeviceState.ACTIVE.value: "active",
        DeviceState.STOLEN.value: "stolen",
        DeviceState.FAULTY.value: "faulty",
    }
    for row in rows:
        bucket = buckets.get(row["state"])
        if bucket is None:
            logger.debug(f"Ignoring state outside aggregate buckets: {row['state']}")
            continue
        setattr(counts, bucket, getattr(counts, bucket) + row["count"])
    return counts
