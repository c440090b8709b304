from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class ValidationError:
    table: str
    key: Optional[str]
    field: Optional[str]
    code: str
    message: str


@dataclass(frozen=True)
class ValidationWarning:
    table: str
    key: Optional[str]
    field: Optional[str]
    code: str
    message: str


@dataclass(frozen=True)
class ValidationResult:
    ok: bool
    errors: list[ValidationError] = field(default_factory=list)
    warnings: list[ValidationWarning] = field(default_factory=list)

    def summary(self) -> str:
        return "; ".join(f"[{e.table}:{e.key}] {e.code}: {e.message}" for e in self.errors)


def _err(table: str, key: Optional[str], fld: Optional[str], code: str, message: str) -> ValidationError:
    return ValidationError(table=table, key=key, field=fld, code=code, message=message)


def _warn(table: str, key: Optional[str], fld: Optional[str], code: str, message: str) -> ValidationWarning:
    return ValidationWarning(table=table, key=key, field=fld, code=code, message=message)


def merge_results(*results: ValidationResult) -> ValidationResult:
    errors: list[ValidationError] = []
    warnings: list[ValidationWarning] = []
    for r in results:
        errors.extend(r.errors)
        warnings.extend(r.warnings)
    return ValidationResult(ok=len(errors) == 0, errors=errors, warnings=warnings)
