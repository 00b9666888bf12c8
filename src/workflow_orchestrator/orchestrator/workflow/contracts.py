"""Contracts describe the shape of values crossing a step boundary.

A contract validates an arbitrary value into a typed value, or fails with a
field-level description of what is wrong. Values are dumped back to plain data
(by alias) before crossing the next boundary, so every stage re-validates its
own input.
"""

from __future__ import annotations

import types
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Literal, Union, get_args, get_origin

import pydantic
from pydantic import BaseModel


@dataclass(frozen=True, slots=True)
class FieldIssue:
    path: str
    message: str

    def to_json(self) -> dict[str, str]:
        return {"path": self.path, "message": self.message}


class ContractViolation(ValueError):
    """Raised by :meth:`Contract.validate` when a value does not fit."""

    def __init__(self, contract: str, issues: list[FieldIssue]) -> None:
        self.contract = contract
        self.issues = tuple(issues)
        summary = "; ".join(f"{i.path or '<root>'}: {i.message}" for i in self.issues)
        super().__init__(f"{contract}: {summary}")


@dataclass(frozen=True, slots=True)
class FieldShape:
    """Static description of one field, used for commit-time checks."""

    required: bool
    annotation: Any = None
    nested: Contract | None = None


@dataclass(frozen=True, slots=True)
class CompatibilityIssue:
    path: str
    message: str
    severity: Literal["error", "warning"] = "error"

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


def to_plain(value: Any) -> Any:
    """Convert typed values (pydantic models, nested containers) to plain data."""

    if isinstance(value, BaseModel):
        return value.model_dump(mode="python", by_alias=True)
    if isinstance(value, Mapping):
        return {key: to_plain(item) for key, item in value.items()}
    if isinstance(value, list | tuple):
        return [to_plain(item) for item in value]
    return value


class Contract(ABC):
    """A runtime schema evaluated at every stage crossing."""

    name: str

    @abstractmethod
    def validate(self, value: Any) -> Any:
        """Validate ``value`` and return its typed form.

        Raises:
            ContractViolation: If the value does not satisfy the contract.
        """

    @abstractmethod
    def dump(self, value: Any) -> Any:
        """Return the plain-data form of a value produced by :meth:`validate`."""

    @abstractmethod
    def shape(self) -> dict[str, FieldShape]:
        """Return the top-level fields keyed by their wire name."""

    def accepts_empty(self) -> bool:
        return all(not f.required for f in self.shape().values())

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.name!r})"


class ModelContract(Contract):
    """Contract backed by a pydantic model class."""

    def __init__(self, model: type[BaseModel]) -> None:
        if not (isinstance(model, type) and issubclass(model, BaseModel)):
            raise TypeError(f"ModelContract requires a pydantic model class, got {model!r}")
        self.model = model
        self.name = model.__name__

    def validate(self, value: Any) -> BaseModel:
        try:
            return self.model.model_validate(to_plain(value))
        except pydantic.ValidationError as exc:
            raise ContractViolation(self.name, _issues_from_pydantic(exc)) from exc

    def dump(self, value: Any) -> Any:
        return to_plain(value)

    def shape(self) -> dict[str, FieldShape]:
        out: dict[str, FieldShape] = {}
        for name, info in self.model.model_fields.items():
            key = info.alias or name
            nested_model = _nested_model(info.annotation)
            out[key] = FieldShape(
                required=info.is_required(),
                annotation=info.annotation,
                nested=ModelContract(nested_model) if nested_model is not None else None,
            )
        return out

    def __eq__(self, other: object) -> bool:
        return isinstance(other, ModelContract) and other.model is self.model

    def __hash__(self) -> int:
        return hash(self.model)


class KeyedContract(Contract):
    """Contract for a mapping of step id to that step's output.

    Parallel stages produce every key (``required=True``); branch stages
    produce only the keys whose predicate matched (``required=False``).
    """

    def __init__(self, name: str, entries: Mapping[str, Contract], *, required: bool) -> None:
        self.name = name
        self.entries = dict(entries)
        self.required = required

    def validate(self, value: Any) -> dict[str, Any]:
        if isinstance(value, BaseModel):
            value = to_plain(value)
        if not isinstance(value, Mapping):
            raise ContractViolation(
                self.name, [FieldIssue("", f"expected a mapping, got {type(value).__name__}")]
            )

        issues: list[FieldIssue] = []
        out: dict[str, Any] = {}
        for key, contract in self.entries.items():
            if key not in value:
                if self.required:
                    issues.append(FieldIssue(key, "Field required"))
                continue
            try:
                out[key] = contract.validate(value[key])
            except ContractViolation as exc:
                issues.extend(
                    FieldIssue(_join(key, issue.path), issue.message) for issue in exc.issues
                )
        for key in value:
            if key not in self.entries:
                issues.append(FieldIssue(str(key), "Unexpected key"))

        if issues:
            raise ContractViolation(self.name, issues)
        return out

    def dump(self, value: Any) -> Any:
        return {key: self.entries[key].dump(item) for key, item in value.items()}

    def shape(self) -> dict[str, FieldShape]:
        return {
            key: FieldShape(required=self.required, nested=contract)
            for key, contract in self.entries.items()
        }


def as_contract(value: Contract | type[BaseModel]) -> Contract:
    """Accept either a ready contract or a pydantic model class."""

    if isinstance(value, Contract):
        return value
    return ModelContract(value)


def check_compatible(upstream: Contract, downstream: Contract) -> list[CompatibilityIssue]:
    """Best-effort static check that ``upstream`` output can feed ``downstream``.

    This does not do type inference. It catches missing keys, obvious scalar
    clashes and nested mismatches; anything it cannot judge is left to the
    runtime validation at the boundary.
    """

    return _compare(upstream.shape(), downstream.shape(), prefix="")


def _compare(
    have: dict[str, FieldShape], want: dict[str, FieldShape], *, prefix: str
) -> list[CompatibilityIssue]:
    issues: list[CompatibilityIssue] = []
    for key, target in want.items():
        path = _join(prefix, key)
        source = have.get(key)
        if source is None:
            if target.required:
                issues.append(CompatibilityIssue(path, "required field is never produced"))
            continue
        if target.required and not source.required:
            issues.append(
                CompatibilityIssue(path, "required field may be absent upstream", "warning")
            )
        if source.nested is not None and target.nested is not None:
            issues.extend(_compare(source.nested.shape(), target.nested.shape(), prefix=path))
        elif not _annotation_compatible(source.annotation, target.annotation):
            issues.append(
                CompatibilityIssue(
                    path,
                    f"type {_type_name(source.annotation)} cannot satisfy "
                    f"{_type_name(target.annotation)}",
                )
            )
    return issues


_SCALARS: tuple[type, ...] = (str, int, float, bool)


def _annotation_compatible(have: Any, want: Any) -> bool:
    if have is None or want is None or want is Any or have == want:
        return True

    have_literals = _literal_values(have)
    want_literals = _literal_values(want)
    if have_literals is not None and want_literals is not None:
        return set(have_literals) <= set(want_literals)
    if have_literals is not None and want in _SCALARS:
        return all(isinstance(v, want) for v in have_literals)

    if have in _SCALARS and want in _SCALARS:
        return have is want or (have is int and want is float)
    if have in _SCALARS and want_literals is not None:
        # A plain string may still hold one of the literal values at run time.
        return all(isinstance(v, have) for v in want_literals)
    if have in _SCALARS and _nested_model(want) is not None:
        return False
    if want in _SCALARS and _nested_model(have) is not None:
        return False
    return True


def _literal_values(annotation: Any) -> tuple[Any, ...] | None:
    if get_origin(annotation) is Literal:
        return get_args(annotation)
    return None


def _nested_model(annotation: Any) -> type[BaseModel] | None:
    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return annotation
    if get_origin(annotation) in (Union, types.UnionType):
        models = [a for a in get_args(annotation) if a is not type(None)]
        if len(models) == 1:
            return _nested_model(models[0])
    return None


def _type_name(annotation: Any) -> str:
    if isinstance(annotation, type):
        return annotation.__name__
    return repr(annotation)


def _issues_from_pydantic(exc: pydantic.ValidationError) -> list[FieldIssue]:
    return [
        FieldIssue(".".join(str(part) for part in error["loc"]), error["msg"])
        for error in exc.errors()
    ]


def _join(prefix: str, key: str) -> str:
    if not prefix:
        return key
    if not key:
        return prefix
    return f"{prefix}.{key}"
