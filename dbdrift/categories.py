# db-drift/dbdrift/categories.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple, Union

from dbdrift.comparators.interface import ConfigurationError

_TIMESTAMPS = ("create_date", "modify_date")


@dataclass(frozen=True)
class CategoryConfig:
    """
    Descriptor for one object category.

    ``key_columns`` identify a record across source and target (order matters);
    ``ignore_columns`` are excluded from equality but kept for display.
    """
    name: str
    key_columns: Tuple[str, ...]
    ignore_columns: FrozenSet[str] = field(default_factory=frozenset)
    comparator: str = "keyed"
    description: str = ""

    def __post_init__(self) -> None:
        name = (self.name or "").strip()
        if not name:
            raise ConfigurationError("Category name must be non-empty")
        object.__setattr__(self, "name", name)

        keys = tuple(_as_list(self.key_columns))
        if not keys:
            raise ConfigurationError(f"Category '{name}': key_columns must be non-empty")
        if len(set(keys)) != len(keys):
            raise ConfigurationError(f"Category '{name}': duplicate key column in {list(keys)}")
        object.__setattr__(self, "key_columns", keys)

        ignore = frozenset(_as_list(self.ignore_columns))
        overlap = ignore & set(keys)
        if overlap:
            raise ConfigurationError(
                f"Category '{name}': column(s) {sorted(overlap)} cannot be both key and ignored"
            )
        object.__setattr__(self, "ignore_columns", ignore)
        object.__setattr__(self, "comparator", (self.comparator or "keyed").strip().lower())


def _as_list(value: Union[str, Iterable[str], None]) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [x.strip() for x in value.split(",") if x.strip()]
    return [str(x).strip() for x in value if x is not None and str(x).strip()]


def _cat(name: str, keys: Tuple[str, ...], ignore: Tuple[str, ...] = (), description: str = "") -> CategoryConfig:
    return CategoryConfig(name=name, key_columns=keys, ignore_columns=frozenset(ignore), description=description)


# Built-in descriptor table (SQL Server catalog vocabulary).
_BUILTIN: Tuple[CategoryConfig, ...] = (
    _cat("Schemas", ("name",), description="Database schemas and their owners."),
    _cat("Types", ("schema", "name"), description="User-defined alias and table types."),
    _cat("Tables", ("schema", "name"), _TIMESTAMPS + ("row_count",), "User tables."),
    _cat("Columns", ("schema", "table", "column"), description="Table and view columns with type, length, nullability."),
    _cat("Indexes", ("schema", "table", "index"), description="Indexes and their key/included columns."),
    _cat("Keys", ("schema", "table", "key_name"), _TIMESTAMPS, "Primary key and unique constraints."),
    _cat("Foreign Keys", ("schema", "table", "constraint_name"), _TIMESTAMPS),
    _cat("Check Constraints", ("schema", "table", "constraint_name"), _TIMESTAMPS),
    _cat("Default Constraints", ("schema", "table", "column"), ("constraint_name",) + _TIMESTAMPS,
         "Column defaults; system-generated constraint names are ignored."),
    _cat("Functions", ("schema", "name"), _TIMESTAMPS),
    _cat("Procedures", ("schema", "name"), _TIMESTAMPS),
    _cat("Views", ("schema", "name"), _TIMESTAMPS),
    _cat("Synonyms", ("schema", "name"), _TIMESTAMPS),
    _cat("Triggers", ("schema", "table", "name"), _TIMESTAMPS),
    _cat("Sequences", ("schema", "name"), ("current_value",) + _TIMESTAMPS),
    _cat("Database Options", ("option_name",), description="sys.databases settings."),
    _cat("Users", ("name",), ("sid",) + _TIMESTAMPS, "Database principals of user type."),
    _cat("Roles", ("name",), _TIMESTAMPS),
    _cat("Role Members", ("role", "member")),
    _cat("Permissions", ("grantee", "permission", "class", "securable")),
)

_REGISTRY: Dict[str, CategoryConfig] = {}


def register(config: CategoryConfig) -> CategoryConfig:
    """Append-only: re-registering a name (case-insensitive) is an error."""
    key = config.name.lower()
    if key in _REGISTRY:
        raise ConfigurationError(f"Category '{config.name}' is already registered")
    _REGISTRY[key] = config
    return config


def get(name: str) -> Optional[CategoryConfig]:
    return _REGISTRY.get((name or "").strip().lower())


def available() -> Dict[str, CategoryConfig]:
    return {c.name: c for c in _REGISTRY.values()}


def builtin_categories() -> Dict[str, CategoryConfig]:
    return {c.name: c for c in _BUILTIN}


for _c in _BUILTIN:
    register(_c)
