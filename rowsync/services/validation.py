from __future__ import annotations

import logging
import math
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from ..models.outcome import AcceptedRows, ErrorMap
from ..models.payload import MODIFIED_KEY, NEW_KEY, ROW_ID_KEY, SyncPayload, RowRecord
from ..models.row import DEFAULT_TEMPORARY_PREFIX, Persistent, Temporary, parse_wire_identity

logger = logging.getLogger(__name__)

"""Per-row validation of the flagged positions of a sync payload.

Rules are declared once per field name, in a pipe-delimited string
(``required|string|max:255``) or as a list of rule strings (needed when a
``regex:`` pattern itself contains ``|``). A field's rule set is applied
independently at every selected position under the compound key
``<field>.<position>``; a failure at one position never stops evaluation of
the others. Any failure rejects the whole request.

Supported rules:

    required        value must be present and non-blank
    nullable        blank values are allowed (also the default without required)
    string          value must be text
    numeric         value must parse as a finite number
    integer         value must be a whole number
    max:N / min:N   numeric bound with numeric/integer, otherwise length bound
    in:a,b,...      value must be one of the listed literals
    regex:PATTERN   value must match PATTERN (re.search)
    bail            stop at the first failing rule for the key

Blank values only ever trigger ``required``; every other rule skips them.
"""

__all__ = [
    "RuleSyntaxError",
    "Rule",
    "FieldRules",
    "parse_rules",
    "ValidationOutcome",
    "ValidationDispatcher",
]

_MARKER_RULES = {"required", "nullable", "bail"}
_VALUE_RULES = {"string", "numeric", "integer", "max", "min", "in", "regex"}
_ARG_RULES = {"max", "min", "in", "regex"}

_NUMERIC_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")
_INTEGER_RE = re.compile(r"^[+-]?\d+$")


class RuleSyntaxError(ValueError):
    """Raised when a field's rule declaration cannot be parsed."""


@dataclass(frozen=True)
class Rule:
    name: str
    argument: str | None = None


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    return False


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    text = str(value).strip()
    if not _NUMERIC_RE.match(text):
        return None
    number = float(text)
    return number if math.isfinite(number) else None


def _fmt_bound(bound: float) -> str:
    return str(int(bound)) if bound == int(bound) else str(bound)


@dataclass(frozen=True)
class FieldRules:
    """The parsed rule set of one field."""
    field_name: str
    rules: tuple[Rule, ...] = ()
    _bounds: dict[str, float] = field(default_factory=dict, compare=False, repr=False)
    _patterns: dict[str, re.Pattern[str]] = field(default_factory=dict, compare=False, repr=False)

    def has(self, name: str) -> bool:
        return any(r.name == name for r in self.rules)

    @property
    def required(self) -> bool:
        return self.has("required")

    @property
    def bail(self) -> bool:
        return self.has("bail")

    @property
    def numeric_context(self) -> bool:
        return self.has("numeric") or self.has("integer")

    def check(self, value: Any) -> list[str]:
        """Return the ordered failure messages for one value (empty when valid)."""
        name = self.field_name
        if _is_blank(value):
            return [f"{name} is required"] if self.required else []

        messages: list[str] = []
        for rule in self.rules:
            if rule.name in _MARKER_RULES:
                continue
            message = self._check_one(rule, value)
            if message is None:
                continue
            messages.append(message)
            if self.bail:
                break
        return messages

    def _check_one(self, rule: Rule, value: Any) -> str | None:
        name = self.field_name
        if rule.name == "string":
            return None if isinstance(value, str) else f"{name} must be a string"
        if rule.name == "numeric":
            return None if _as_number(value) is not None else f"{name} must be a number"
        if rule.name == "integer":
            if isinstance(value, int) and not isinstance(value, bool):
                return None
            return None if _INTEGER_RE.match(str(value).strip()) else f"{name} must be an integer"
        if rule.name in ("max", "min"):
            bound = self._bounds[rule.name]
            label = _fmt_bound(bound)
            if self.numeric_context:
                number = _as_number(value)
                if number is None:
                    return None  # reported by numeric/integer
                measured, suffix = number, ""
            else:
                measured, suffix = len(str(value)), " characters"
            if rule.name == "max" and measured > bound:
                return f"{name} may not be greater than {label}{suffix}"
            if rule.name == "min" and measured < bound:
                return f"{name} must be at least {label}{suffix}"
            return None
        if rule.name == "in":
            options = [o.strip() for o in (rule.argument or "").split(",")]
            if str(value).strip() in options:
                return None
            return f"{name} must be one of: {', '.join(options)}"
        if rule.name == "regex":
            pattern = self._patterns["regex"]
            return None if pattern.search(str(value)) else f"{name} format is invalid"
        raise RuleSyntaxError(f"unknown rule '{rule.name}' for field '{name}'")  # pragma: no cover


def parse_rules(field_name: str, declaration: str | Sequence[str]) -> FieldRules:
    """Parse a rule declaration into ``FieldRules``.

    Raises:
        RuleSyntaxError: unknown rule name, missing or malformed argument
    """
    if isinstance(declaration, str):
        parts = declaration.split("|")
    else:
        parts = list(declaration)

    rules: list[Rule] = []
    bounds: dict[str, float] = {}
    patterns: dict[str, re.Pattern[str]] = {}
    for raw in parts:
        text = raw.strip()
        if not text:
            continue
        name, sep, argument = text.partition(":")
        name = name.strip()
        if name not in _MARKER_RULES and name not in _VALUE_RULES:
            raise RuleSyntaxError(f"unknown rule '{name}' for field '{field_name}'")
        if name in _ARG_RULES:
            if not sep or argument == "":
                raise RuleSyntaxError(f"rule '{name}' for field '{field_name}' needs an argument")
        elif sep:
            raise RuleSyntaxError(f"rule '{name}' for field '{field_name}' takes no argument")

        if name in ("max", "min"):
            bound = _as_number(argument)
            if bound is None:
                raise RuleSyntaxError(
                    f"rule '{name}' for field '{field_name}' needs a numeric argument, got '{argument}'"
                )
            bounds[name] = bound
        elif name == "regex":
            try:
                patterns["regex"] = re.compile(argument)
            except re.error as e:
                raise RuleSyntaxError(f"invalid regex for field '{field_name}': {e}") from e
        rules.append(Rule(name, argument if sep else None))

    return FieldRules(field_name=field_name, rules=tuple(rules), _bounds=bounds, _patterns=patterns)


@dataclass(frozen=True)
class ValidationOutcome:
    """Result of one validation pass.

    ``accepted`` is only populated when ``errors`` is empty; a rejected
    outcome carries an empty ``AcceptedRows``.
    """
    errors: ErrorMap
    accepted: AcceptedRows = field(default_factory=AcceptedRows)
    records: list[RowRecord] = field(default_factory=list)  # selected rows, position order
    checks: int = 0  # compound keys evaluated

    @property
    def ok(self) -> bool:
        return not self.errors


class ValidationDispatcher:
    """Validates only the positions a payload flags as modified or new."""

    def __init__(
        self,
        rules: Mapping[str, FieldRules],
        temporary_prefix: str = DEFAULT_TEMPORARY_PREFIX,
    ) -> None:
        self.rules = dict(rules)  # declaration order is error-map order
        self.temporary_prefix = temporary_prefix

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(self.rules)

    def validate(self, payload: SyncPayload, pre_errors: ErrorMap | None = None) -> ValidationOutcome:
        """Validate the selected positions of ``payload``.

        ``pre_errors`` carries problems already found while decoding the wire
        body; they are merged in front and also reject the request.
        """
        errors: ErrorMap = dict(pre_errors or {})
        row_count = payload.row_count
        changes = payload.changes

        for key, positions in ((MODIFIED_KEY, changes.positions_modified), (NEW_KEY, changes.positions_new)):
            unknown = [p for p in positions if not 0 <= p < row_count]
            if unknown:
                errors.setdefault(key, []).extend(
                    f"{key} contains unknown position {p}" for p in unknown
                )

        flagged_new = set(changes.positions_new)
        checks = 0
        records: list[RowRecord] = []
        for position in changes.selected:
            if not 0 <= position < row_count:
                continue
            identity = parse_wire_identity(payload.row_ids[position], self.temporary_prefix)
            if identity is None:
                errors[f"{ROW_ID_KEY}.{position}"] = [f"{ROW_ID_KEY} is invalid"]

            values = {
                name: payload.value_at(name, position)
                for name in self.field_names
                if name in payload.columns
            }
            for name, field_rules in self.rules.items():
                checks += 1
                messages = field_rules.check(values.get(name))
                if messages:
                    errors[f"{name}.{position}"] = messages

            if identity is None:
                continue
            if isinstance(identity, Temporary) != (position in flagged_new):
                logger.warning(
                    "position %d is flagged %s but row_id=%s; classifying by row_id",
                    position,
                    "new" if position in flagged_new else "modified",
                    identity.wire_value(),
                )
            records.append(RowRecord(position=position, identity=identity, fields=values))

        if errors:
            logger.debug("validation rejected %d key(s)", len(errors))
            return ValidationOutcome(errors=errors, records=records, checks=checks)

        updates: list[tuple[Persistent, dict[str, Any]]] = []
        inserts: list[dict[str, Any]] = []
        for rec in records:
            if isinstance(rec.identity, Persistent):
                updates.append((rec.identity, rec.fields))
            else:
                inserts.append(rec.fields)
        return ValidationOutcome(
            errors={},
            accepted=AcceptedRows(updates=updates, inserts=inserts),
            records=records,
            checks=checks,
        )
