"""Column type model and column mutation requests."""

import re
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class KeyRole(str, Enum):
    """Key role of a column, using the codes the console UI understands."""

    NONE = ""
    PRIMARY = "PRI"
    UNIQUE = "UNI"
    # Non-unique index member or foreign key column; MySQL reports both as MUL
    FOREIGN = "MUL"


class TypeFamily(str, Enum):
    """Coarse family of a column base type."""

    TEXT = "text"
    STRING = "string"
    INTEGER = "integer"
    DECIMAL = "decimal"
    FLOAT = "float"
    BOOLEAN = "boolean"
    DATE = "date"
    TIME = "time"
    DATETIME = "datetime"
    JSON = "json"
    BINARY = "binary"
    OTHER = "other"


TYPE_ALIASES = {
    "CHARACTER VARYING": "VARCHAR",
    "CHARACTER": "CHAR",
    "INTEGER": "INT",
    "INT4": "INT",
    "INT8": "BIGINT",
    "INT2": "SMALLINT",
    "BOOL": "BOOLEAN",
    "NUMERIC": "DECIMAL",
    "DOUBLE PRECISION": "DOUBLE",
    "FLOAT8": "DOUBLE",
    "FLOAT4": "REAL",
    "TIMESTAMP WITHOUT TIME ZONE": "TIMESTAMP",
    "TIMESTAMP WITH TIME ZONE": "TIMESTAMPTZ",
    "TIME WITHOUT TIME ZONE": "TIME",
    "TIME WITH TIME ZONE": "TIMETZ",
}

FAMILIES: dict[TypeFamily, frozenset[str]] = {
    TypeFamily.TEXT: frozenset({"TEXT", "TINYTEXT", "MEDIUMTEXT", "LONGTEXT"}),
    TypeFamily.STRING: frozenset({"VARCHAR", "CHAR", "ENUM", "SET", "UUID"}),
    TypeFamily.INTEGER: frozenset(
        {
            "INT",
            "TINYINT",
            "SMALLINT",
            "MEDIUMINT",
            "BIGINT",
            "SERIAL",
            "BIGSERIAL",
            "SMALLSERIAL",
        }
    ),
    TypeFamily.DECIMAL: frozenset({"DECIMAL"}),
    TypeFamily.FLOAT: frozenset({"FLOAT", "DOUBLE", "REAL"}),
    TypeFamily.BOOLEAN: frozenset({"BOOLEAN"}),
    TypeFamily.DATE: frozenset({"DATE", "YEAR"}),
    TypeFamily.TIME: frozenset({"TIME", "TIMETZ"}),
    TypeFamily.DATETIME: frozenset({"DATETIME", "TIMESTAMP", "TIMESTAMPTZ"}),
    TypeFamily.JSON: frozenset({"JSON", "JSONB"}),
    TypeFamily.BINARY: frozenset(
        {"BLOB", "TINYBLOB", "MEDIUMBLOB", "LONGBLOB", "BYTEA", "BINARY", "VARBINARY"}
    ),
}

# Types the backends reject with a length/precision parameter, e.g. TEXT(255)
PARAMETERLESS_TYPES = (
    FAMILIES[TypeFamily.TEXT]
    | FAMILIES[TypeFamily.JSON]
    | frozenset(
        {"DATE", "BOOLEAN", "UUID", "BYTEA", "TINYBLOB", "MEDIUMBLOB", "LONGBLOB"}
    )
)

# Single numeric parameter means precision (not length) for these
PRECISION_TYPES = frozenset(
    {"DECIMAL", "FLOAT", "DOUBLE", "REAL", "TIME", "TIMETZ", "TIMESTAMP",
     "TIMESTAMPTZ", "DATETIME"}
)

MODIFIER_WORDS = frozenset({"UNSIGNED", "SIGNED", "ZEROFILL"})

_TYPE_PATTERN = re.compile(
    r"^(?P<base>[^()]+)(?:\((?P<params>[^()]*)\))?(?P<rest>[^()]*)$"
)


class ColumnType(BaseModel):
    """Structured column type: base type plus optional parameters."""

    model_config = ConfigDict(frozen=True)

    base: str = Field(..., description="Upper-cased, alias-normalized base type")
    length: Optional[int] = Field(None, description="Length for string types")
    precision: Optional[int] = Field(None, description="Numeric/time precision")
    scale: Optional[int] = Field(None, description="Numeric scale")
    options: Optional[str] = Field(
        None, description="Raw parameter list that is not numeric (ENUM values)"
    )
    modifiers: str = Field(default="", description="Trailing modifiers (UNSIGNED)")

    @classmethod
    def parse(cls, text: str) -> "ColumnType":
        """
        Parse a type string such as ``VARCHAR(255)`` or ``decimal(10,2) unsigned``.

        Raises:
            ValueError: If the text is not a type expression
        """
        match = _TYPE_PATTERN.match(text.strip()) if text else None
        if not match:
            raise ValueError(f"Invalid column type: {text!r}")

        words = match.group("base").split() + match.group("rest").split()
        base_words = [w.upper() for w in words if w.upper() not in MODIFIER_WORDS]
        modifiers = [w.upper() for w in words if w.upper() in MODIFIER_WORDS]
        if not base_words or not re.match(r"^[A-Z][A-Z0-9_ ]*$", " ".join(base_words)):
            raise ValueError(f"Invalid column type: {text!r}")

        base = " ".join(base_words)
        base = TYPE_ALIASES.get(base, base)
        return cls(base=base, modifiers=" ".join(modifiers)).with_params(
            match.group("params")
        )

    @classmethod
    def from_catalog(
        cls,
        data_type: str,
        max_length: Optional[int] = None,
        precision: Optional[int] = None,
        scale: Optional[int] = None,
    ) -> "ColumnType":
        """Build from separate information_schema columns."""
        column_type = cls.parse(data_type)
        if column_type.family is TypeFamily.DECIMAL:
            return column_type.model_copy(
                update={"precision": precision, "scale": scale}
            )
        if column_type.family is TypeFamily.STRING and max_length:
            return column_type.model_copy(update={"length": max_length})
        return column_type

    def with_params(self, params: Optional[str]) -> "ColumnType":
        """Copy with parameters taken from a raw ``(…)`` list like ``10,2``."""
        if params is None or not params.strip():
            return self

        parts = [p.strip() for p in params.split(",")]
        if not all(p.isdigit() for p in parts):
            return self.model_copy(update={"options": params.strip()})

        numbers = [int(p) for p in parts]
        if len(numbers) == 2:
            return self.model_copy(
                update={"precision": numbers[0], "scale": numbers[1], "length": None}
            )
        if len(numbers) == 1:
            if self.base in PRECISION_TYPES:
                return self.model_copy(update={"precision": numbers[0]})
            return self.model_copy(update={"length": numbers[0]})
        return self.model_copy(update={"options": params.strip()})

    @property
    def family(self) -> TypeFamily:
        for family, bases in FAMILIES.items():
            if self.base in bases:
                return family
        return TypeFamily.OTHER

    @property
    def has_params(self) -> bool:
        return any(
            v is not None
            for v in (self.length, self.precision, self.scale, self.options)
        )

    def canonical(self) -> "ColumnType":
        """Drop parameters the backend would reject (``TEXT(255)`` -> ``TEXT``)."""
        if self.base in PARAMETERLESS_TYPES and self.has_params:
            return self.model_copy(
                update={"length": None, "precision": None, "scale": None, "options": None}
            )
        return self

    @property
    def params(self) -> Optional[str]:
        if self.options is not None:
            return self.options
        if self.precision is not None and self.scale is not None:
            return f"{self.precision},{self.scale}"
        if self.precision is not None:
            return str(self.precision)
        if self.length is not None:
            return str(self.length)
        return None

    def render(self, base: Optional[str] = None, with_modifiers: bool = True) -> str:
        """Render as SQL type text, optionally under a dialect-specific base name."""
        text = base or self.base
        params = self.params
        if params is not None:
            text += f"({params})"
        if with_modifiers and self.modifiers:
            text += f" {self.modifiers}"
        return text

    def __str__(self) -> str:
        return self.render()


class ColumnSpec(BaseModel):
    """Requested column definition for add/update operations."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., description="Target column name")
    original_name: Optional[str] = Field(
        None,
        alias="originalName",
        description="Current column name, present only for renames",
    )
    type: str = Field(..., description="Type, optionally with parameters")
    type_params: Optional[str] = Field(
        None, alias="typeParams", description="Type parameters, e.g. 255 or 10,2"
    )
    nullable: bool = Field(default=True, description="Whether NULL is allowed")
    key: KeyRole = Field(default=KeyRole.NONE, description="Requested key role")
    default: Optional[str] = Field(None, description="Default value")
    extra: str = Field(default="", description="Extra modifiers (auto_increment)")

    @field_validator("key", mode="before")
    @classmethod
    def normalize_key(cls, v: Any) -> Any:
        if v is None:
            return KeyRole.NONE
        if isinstance(v, str):
            return v.upper()
        return v

    @field_validator("default", mode="before")
    @classmethod
    def stringify_default(cls, v: Any) -> Any:
        if v is None or isinstance(v, str):
            return v
        if isinstance(v, bool):
            return "TRUE" if v else "FALSE"
        return str(v)

    @field_validator("extra", mode="before")
    @classmethod
    def normalize_extra(cls, v: Any) -> Any:
        return (v or "").strip()

    def column_type(self) -> ColumnType:
        """Structured type, parameters merged from ``type_params``."""
        column_type = ColumnType.parse(self.type)
        if self.type_params and not column_type.has_params:
            column_type = column_type.with_params(self.type_params)
        return column_type.canonical()

    @property
    def source_name(self) -> str:
        """Name of the column as it exists before the mutation."""
        return self.original_name or self.name

    @property
    def is_rename(self) -> bool:
        return bool(self.original_name) and self.original_name != self.name

    @property
    def wants_auto_increment(self) -> bool:
        return "auto_increment" in self.extra.lower()


class FieldDefinition(BaseModel):
    """One row of the table field builder."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., description="Column name")
    type: str = Field(default="VARCHAR", description="Base type")
    type_params: Optional[str] = Field(
        None, alias="typeParams", description="Type parameters"
    )
    nullable: bool = Field(default=True)
    unique: bool = Field(default=False)
    primary_key: bool = Field(default=False, alias="primaryKey")
    auto_increment: bool = Field(default=False, alias="autoIncrement")
    default_value: Optional[str] = Field(None, alias="defaultValue")

    def to_spec(self) -> ColumnSpec:
        """Express the field as a column spec for rendering."""
        if self.primary_key:
            key = KeyRole.PRIMARY
        elif self.unique:
            key = KeyRole.UNIQUE
        else:
            key = KeyRole.NONE
        return ColumnSpec(
            name=self.name,
            type=self.type,
            type_params=self.type_params,
            nullable=self.nullable and not self.primary_key,
            key=key,
            default=self.default_value or None,
            extra="auto_increment" if self.auto_increment else "",
        )
