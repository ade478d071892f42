"""
Validation engine for wrpc.

A ValidationPlan is computed once per record when the schema is compiled:
the properties are put in a topological order of their dependencies so a
property's constraints only run once everything it depends on is known to
be valid. Validation itself is a pure read producing an ErrorBundle.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from .constraints import evaluate, references, render
from .errors import ErrorBundle, Field, Invalid, SchemaError
from .schema import Constraint, Property, Record


@dataclass(frozen=True, slots=True)
class PropertyRule:
    """The constraints owned by one property and what they depend on."""

    name: str
    constraints: tuple[Constraint, ...]
    depends_on: tuple[str, ...]
    optional: bool


@dataclass(frozen=True, slots=True)
class ValidationPlan:
    """Property rules in evaluation order, followed by record-scoped constraints."""

    rules: tuple[PropertyRule, ...]
    record_constraints: tuple[Constraint, ...] = ()

    @property
    def order(self) -> tuple[str, ...]:
        return tuple(rule.name for rule in self.rules)

    @property
    def is_trivial(self) -> bool:
        return not self.record_constraints and not any(r.constraints for r in self.rules)

    def validate(self, value: Any) -> ErrorBundle:
        """
        Check ``value`` against the plan.

        A property's constraints are skipped entirely (neither evaluated nor
        reported) when one of its dependencies is not known-valid. Every
        constraint of a property that does run is evaluated, each failure is
        reported as Field(name, Invalid(...)). Record-scoped constraints run
        last, unconditionally, reported as bare Invalid(...).
        """
        errors = ErrorBundle()
        valid: set[str] = set()

        for rule in self.rules:
            if not all(dep in valid for dep in rule.depends_on):
                continue

            if rule.optional and getattr(value, rule.name) is None:
                valid.add(rule.name)
                continue

            passed = True
            for constraint in rule.constraints:
                if not _holds(constraint, value):
                    errors.error(Field(rule.name, Invalid(render(constraint))))
                    passed = False

            if passed:
                valid.add(rule.name)

        for constraint in self.record_constraints:
            if not _holds(constraint, value):
                errors.error(Invalid(render(constraint)))

        return errors


def _holds(constraint: Constraint, value: Any) -> bool:
    try:
        return bool(evaluate(constraint, value))
    except Exception:
        return False


def property_dependencies(prop: Property) -> tuple[str, ...]:
    """Names the property depends on: explicit ``depends_on`` plus what its constraints read."""
    names = set(prop.depends_on)
    for constraint in prop.constraints:
        names |= references(constraint)
    names.discard(prop.name)
    return tuple(sorted(names))


def topological_order(names: Sequence[str], edges: dict[str, tuple[str, ...]]) -> tuple[str, ...]:
    """
    Order ``names`` so every name comes after the names it depends on.

    Ties are broken by the position in ``names`` so the order is stable for a
    given schema.

    Raises:
        SchemaError: If the dependencies contain a cycle.
    """
    position = {name: i for i, name in enumerate(names)}
    indegree = {name: len(edges.get(name, ())) for name in names}
    dependents: dict[str, list[str]] = {name: [] for name in names}
    for name in names:
        for dep in edges.get(name, ()):
            dependents[dep].append(name)

    ready = sorted((n for n in names if indegree[n] == 0), key=position.__getitem__)
    order: list[str] = []
    while ready:
        name = ready.pop(0)
        order.append(name)
        for child in dependents[name]:
            indegree[child] -= 1
            if indegree[child] == 0:
                ready.append(child)
                ready.sort(key=position.__getitem__)

    if len(order) != len(names):
        cyclic = [n for n in names if n not in order]
        raise SchemaError(f"Validation dependencies contain a cycle: {', '.join(cyclic)}")

    return tuple(order)


def build_plan(record: Record) -> ValidationPlan:
    """
    Compute the validation plan of a record.

    Raises:
        SchemaError: If a property depends on an undeclared property or the
            dependencies are cyclic.
    """
    declared = [prop.name for prop in record.properties]
    known = set(declared)
    edges: dict[str, tuple[str, ...]] = {}

    for prop in record.properties:
        deps = property_dependencies(prop)
        unknown = [dep for dep in deps if dep not in known]
        if unknown:
            raise SchemaError(
                f"{record.name}.{prop.name} depends on unknown properties: {', '.join(unknown)}"
            )
        edges[prop.name] = deps

    for constraint in record.constraints:
        unknown = sorted(references(constraint) - known)
        if unknown:
            raise SchemaError(
                f"{record.name} constraint reads unknown properties: {', '.join(unknown)}"
            )

    by_name = {prop.name: prop for prop in record.properties}
    rules = tuple(
        PropertyRule(
            name=name,
            constraints=tuple(by_name[name].constraints),
            depends_on=edges[name],
            optional=by_name[name].type.is_optional,
        )
        for name in topological_order(declared, edges)
    )
    return ValidationPlan(rules=rules, record_constraints=tuple(record.constraints))
