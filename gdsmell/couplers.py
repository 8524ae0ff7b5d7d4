"""Couplers: classes that know too much about each other, and global state."""

from __future__ import annotations

import re
from dataclasses import dataclass
from itertools import combinations
from typing import Any, Dict, List, Optional, Set, Tuple, Union

from . import metrics
from .models import Class, Method
from .smell_detector import (
    ClassScope,
    MethodScope,
    ProjectScope,
    ScopeKind,
    Severity,
    SmellDetails,
    SmellDetector,
    SmellResult,
    grade,
)

CALL_CHAIN = re.compile(r"\w+(?:\([^()]*\))?(?:\.\w+(?:\([^()]*\))?)+")
CHAIN_SEGMENT = re.compile(r"(\w+)(\([^()]*\))?")
NODE_PATH = re.compile(r"""\$(?:"([^"]+)"|((?:\.\.|\w+)(?:/(?:\.\.|\w+))*))""")
GET_NODE_PATH = re.compile(r"""get_node\s*\(\s*["']([^"']+)["']""")
LOCAL_QUALIFIERS = ("", "self", "super")


# ===================================================================
# Feature Envy
# ===================================================================

@dataclass(frozen=True)
class ForeignAccess:
    owner: str
    fields: Tuple[str, ...]


@dataclass(frozen=True)
class FeatureEnvyDetails(SmellDetails):
    envy_ratio: float
    local_access_count: int
    foreign_access_count: int
    foreign_classes: Tuple[ForeignAccess, ...]
    thresholds: Dict[str, Any]


class FeatureEnvyDetector(SmellDetector):
    name = "FeatureEnvy"
    description = "Method is more interested in the data of other classes than its own"
    scopes = frozenset({ScopeKind.METHOD})
    defaults = {"envy_ratio": 2.0, "min_foreign_accesses": 3}
    heuristic = True

    def evaluate(self, scope: MethodScope, thresholds: Dict[str, Any]) -> SmellResult:
        own = scope.owner.name.value
        local: Set[str] = set()
        foreign: Dict[str, Set[str]] = {}
        for access in sorted(scope.method.field_accesses):
            if access.owner in (own, "self"):
                local.add(access.field)
            else:
                foreign.setdefault(access.owner, set()).add(access.field)

        foreign_count = sum(len(fields) for fields in foreign.values())
        ratio = foreign_count / (len(local) + 1)

        detected = (
            ratio > self.threshold(thresholds, "envy_ratio")
            and foreign_count > self.threshold(thresholds, "min_foreign_accesses")
        )
        severity = grade([
            (ratio > 5.0, Severity.CRITICAL),
            (ratio > 3.5, Severity.HIGH),
            (ratio > 2.0, Severity.MEDIUM),
        ])
        details = FeatureEnvyDetails(
            envy_ratio=round(ratio, 2),
            local_access_count=len(local),
            foreign_access_count=foreign_count,
            foreign_classes=tuple(
                ForeignAccess(owner, tuple(sorted(fields))) for owner, fields in foreign.items()
            ),
            thresholds=self.configured(thresholds),
        )
        return self.result(detected, severity, scope.location(), details)


# ===================================================================
# Message Chains
# ===================================================================

@dataclass(frozen=True)
class MessageChain:
    kind: str
    chain: Tuple[str, ...]
    length: int
    method: str
    line: Optional[int]


@dataclass(frozen=True)
class MessageChainsDetails(SmellDetails):
    chains: Tuple[MessageChain, ...]
    max_chain_length: int
    thresholds: Dict[str, Any]


def message_chains(method: Method) -> List[MessageChain]:
    """Every call chain and node-path chain of two or more links in *method*."""
    found: List[MessageChain] = []
    name = method.name.value
    for line in method.lines:
        if not line.is_code:
            continue
        content = line.content
        for path in GET_NODE_PATH.findall(content):
            segments = tuple(part for part in path.split("/") if part)
            if len(segments) > 1:
                found.append(MessageChain("node_path", segments, len(segments), name, line.line_number))
        for quoted, bare in NODE_PATH.findall(content):
            segments = tuple(part for part in (quoted or bare).split("/") if part)
            if len(segments) > 1:
                found.append(MessageChain("node_path", segments, len(segments), name, line.line_number))
        for match in CALL_CHAIN.finditer(metrics.code_of(content)):
            calls = tuple(seg for seg, args in CHAIN_SEGMENT.findall(match.group(0)) if args)
            if len(calls) > 1:
                found.append(MessageChain("call_chain", calls, len(calls), name, line.line_number))
    return found


class MessageChainsDetector(SmellDetector):
    name = "MessageChains"
    description = "Long chains of calls or node paths that couple code to a deep structure"
    scopes = frozenset({ScopeKind.METHOD, ScopeKind.CLASS})
    defaults = {"max_chain_length": 3}

    def evaluate(
        self,
        scope: Union[MethodScope, ClassScope],
        thresholds: Dict[str, Any],
    ) -> SmellResult:
        limit = self.threshold(thresholds, "max_chain_length")
        methods = [scope.method] if isinstance(scope, MethodScope) else list(scope.cls.methods)
        chains = [
            chain
            for method in methods
            for chain in message_chains(method)
            if chain.length > limit
        ]

        deepest = max((chain.length for chain in chains), default=0)
        severity = grade([
            (deepest > 5, Severity.HIGH),
            (deepest > 3, Severity.MEDIUM),
        ])
        details = MessageChainsDetails(
            chains=tuple(chains),
            max_chain_length=deepest,
            thresholds=self.configured(thresholds),
        )
        return self.result(bool(chains), severity, scope.location(), details)


# ===================================================================
# Middle Man
# ===================================================================

@dataclass(frozen=True)
class Delegation:
    method: str
    target: str
    callee: str


@dataclass(frozen=True)
class MiddleManDetails(SmellDetails):
    delegation_ratio: float
    delegating_methods: Tuple[Delegation, ...]
    method_count: int
    thresholds: Dict[str, Any]


def delegation(method: Method, owner: str) -> Optional[Delegation]:
    """The single foreign call *method* forwards to, if it is a pure delegation."""
    if method.loc > 3 or len(method.calls) != 1:
        return None
    edge = next(iter(method.calls))
    if edge.qualifier in LOCAL_QUALIFIERS or edge.qualifier == owner:
        return None
    return Delegation(method=method.name.value, target=edge.qualifier.split(".")[0], callee=edge.callee)


class MiddleManDetector(SmellDetector):
    name = "MiddleMan"
    description = "Class delegates most of its work to another class"
    scopes = frozenset({ScopeKind.CLASS})
    defaults = {"max_delegation_ratio": 0.5}
    ratio_keys = frozenset({"max_delegation_ratio"})
    heuristic = True

    def evaluate(self, scope: ClassScope, thresholds: Dict[str, Any]) -> SmellResult:
        klass = scope.cls
        own = klass.name.value
        delegations = [d for d in (delegation(m, own) for m in klass.methods) if d is not None]
        ratio = len(delegations) / klass.method_count if klass.method_count else 0.0

        detected = ratio > self.threshold(thresholds, "max_delegation_ratio")
        severity = grade([
            (ratio > 0.8, Severity.HIGH),
            (ratio > 0.5, Severity.MEDIUM),
        ])
        details = MiddleManDetails(
            delegation_ratio=round(ratio, 4),
            delegating_methods=tuple(delegations),
            method_count=klass.method_count,
            thresholds=self.configured(thresholds),
        )
        return self.result(detected, severity, scope.location(), details)


# ===================================================================
# Inappropriate Intimacy
# ===================================================================

@dataclass(frozen=True)
class IntimatePair:
    first: str
    second: str
    bidirectional: bool
    shared_intimacy: int
    private_fields: Tuple[str, ...]


@dataclass(frozen=True)
class InappropriateIntimacyDetails(SmellDetails):
    pairs: Tuple[IntimatePair, ...]
    max_shared_intimacy: int
    thresholds: Dict[str, Any]


def private_accesses(source: Class, target: str) -> List[str]:
    """``target.field`` strings for every private field of *target* that *source* touches."""
    return [
        f"{target}.{access.field}"
        for method in source.methods
        for access in sorted(method.field_accesses)
        if access.owner == target and access.is_private
    ]


def intimacy(first: Class, second: Class) -> IntimatePair:
    a, b = first.name.value, second.name.value
    touched = private_accesses(first, b) + private_accesses(second, a)
    return IntimatePair(
        first=a,
        second=b,
        bidirectional=metrics.references(first, b) and metrics.references(second, a),
        shared_intimacy=len(touched),
        private_fields=tuple(sorted(set(touched))),
    )


class InappropriateIntimacyDetector(SmellDetector):
    """Pairs of classes reaching into each other's private fields.

    ``shared_intimacy`` counts private-field accesses in both directions;
    with ``require_bidirectional`` both classes must also depend on each other.
    """

    name = "InappropriateIntimacy"
    description = "Two classes depend on each other's private details"
    scopes = frozenset({ScopeKind.CLASS, ScopeKind.PROJECT})
    defaults = {"max_shared_intimacy": 3, "require_bidirectional": True}
    heuristic = True

    def evaluate(
        self,
        scope: Union[ClassScope, ProjectScope],
        thresholds: Dict[str, Any],
    ) -> SmellResult:
        limit = self.threshold(thresholds, "max_shared_intimacy")
        require_bidirectional = self.threshold(thresholds, "require_bidirectional")
        classes = scope.project.classes

        if isinstance(scope, ClassScope):
            own = scope.cls.name.value
            candidates = [
                intimacy(scope.cls, other) for other in classes if other.name.value != own
            ]
        else:
            candidates = [intimacy(first, second) for first, second in combinations(classes, 2)]

        pairs = [
            pair for pair in candidates
            if (pair.bidirectional or not require_bidirectional) and pair.shared_intimacy > limit
        ]
        worst = max((pair.shared_intimacy for pair in pairs), default=0)
        severity = grade([
            (worst > 8, Severity.HIGH),
            (worst > 3, Severity.MEDIUM),
        ])
        details = InappropriateIntimacyDetails(
            pairs=tuple(pairs),
            max_shared_intimacy=worst,
            thresholds=self.configured(thresholds),
        )
        return self.result(bool(pairs), severity, scope.location(), details)


# ===================================================================
# Global State
# ===================================================================

@dataclass(frozen=True)
class AutoloadSummary:
    name: str
    field_count: int
    method_count: int
    total_loc: int
    is_god: bool


@dataclass(frozen=True)
class GlobalStateDetails(SmellDetails):
    autoload_count: int
    total_global_vars: int
    autoloads: Tuple[AutoloadSummary, ...]
    god_autoloads: Tuple[str, ...]
    thresholds: Dict[str, Any]


class GlobalStateDetector(SmellDetector):
    name = "GlobalState"
    description = "Too many autoload singletons, too much global data, or god autoloads"
    scopes = frozenset({ScopeKind.PROJECT})
    defaults = {
        "max_autoloads": 5,
        "max_global_vars": 20,
        "god_autoload_loc": 400,
        "god_autoload_methods": 20,
    }

    def evaluate(self, scope: ProjectScope, thresholds: Dict[str, Any]) -> SmellResult:
        project = scope.project
        god_loc = self.threshold(thresholds, "god_autoload_loc")
        god_methods = self.threshold(thresholds, "god_autoload_methods")

        summaries = tuple(
            AutoloadSummary(
                name=autoload.name.value,
                field_count=autoload.field_count,
                method_count=autoload.method_count,
                total_loc=autoload.total_loc,
                is_god=autoload.total_loc > god_loc or autoload.method_count > god_methods,
            )
            for autoload in project.autoloads
        )
        count = len(summaries)
        global_vars = sum(summary.field_count for summary in summaries)
        gods = tuple(summary.name for summary in summaries if summary.is_god)

        detected = (
            count > self.threshold(thresholds, "max_autoloads")
            or global_vars > self.threshold(thresholds, "max_global_vars")
            or bool(gods)
        )
        severity = grade([
            (bool(gods), Severity.CRITICAL),
            (count > 8 or global_vars > 40, Severity.HIGH),
            (count > 5 or global_vars > 20, Severity.MEDIUM),
        ])
        details = GlobalStateDetails(
            autoload_count=count,
            total_global_vars=global_vars,
            autoloads=summaries,
            god_autoloads=gods,
            thresholds=self.configured(thresholds),
        )
        return self.result(detected, severity, scope.location(), details)
