"""Request, result and debug records exchanged with the query engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional

from .errors import MalformedResponse


class Mode(str, Enum):
    """Which word position a query is about."""

    CARET = "caret"
    LINE_LAST = "lineLast"


ALL_MODES: FrozenSet[Mode] = frozenset(Mode)


class RhymeType(str, Enum):
    """How closely a candidate rhymes with its target."""

    PERFECT = "perfect"
    NEAR = "near"
    SLANT = "slant"


ALL_RHYME_TYPES: FrozenSet[RhymeType] = frozenset(RhymeType)


def _coerce_modes(modes: Iterable[Any]) -> FrozenSet[Mode]:
    return frozenset(Mode(mode) for mode in modes)


def _coerce_rhyme_types(rhyme_types: Optional[Iterable[Any]]) -> FrozenSet[RhymeType]:
    if rhyme_types is None:
        return ALL_RHYME_TYPES
    return frozenset(RhymeType(kind) for kind in rhyme_types)


def _ordered(members: Iterable[Any]) -> List[Any]:
    members = list(members)
    if not members:
        return []
    order = list(type(members[0]))
    return sorted(members, key=order.index)


@dataclass(frozen=True)
class QueryRequest:
    """Targets for one suggestion round trip.

    ``targets`` maps each mode to the raw word the editor supplied for it;
    only modes in ``active_modes`` are queried. ``rhyme_types`` selects which
    kinds of rhyme may appear in the lists and defaults to all of them.
    """

    targets: Mapping[Mode, str]
    active_modes: FrozenSet[Mode]
    cap: Optional[int] = None
    debounce_ms: Optional[int] = None
    rhyme_types: FrozenSet[RhymeType] = ALL_RHYME_TYPES

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "targets",
            MappingProxyType(
                {Mode(key): "" if value is None else str(value) for key, value in self.targets.items()}
            ),
        )
        object.__setattr__(self, "active_modes", _coerce_modes(self.active_modes))
        object.__setattr__(self, "rhyme_types", _coerce_rhyme_types(self.rhyme_types))

    @classmethod
    def for_target(
        cls,
        raw_target: Optional[str],
        active_modes: Iterable[Mode | str] = (Mode.CARET,),
        *,
        cap: Optional[int] = None,
        debounce_ms: Optional[int] = None,
        rhyme_types: Optional[Iterable[RhymeType | str]] = None,
    ) -> "QueryRequest":
        """Build a request that queries the same raw word in every active mode."""

        modes = _coerce_modes(active_modes)
        return cls(
            targets={mode: raw_target for mode in modes},
            active_modes=modes,
            cap=cap,
            debounce_ms=debounce_ms,
            rhyme_types=_coerce_rhyme_types(rhyme_types),
        )

    @classmethod
    def for_targets(
        cls,
        *,
        caret: Optional[str] = None,
        line_last: Optional[str] = None,
        cap: Optional[int] = None,
        debounce_ms: Optional[int] = None,
        rhyme_types: Optional[Iterable[RhymeType | str]] = None,
    ) -> "QueryRequest":
        """Build a request activating each mode whose word was supplied."""

        targets: Dict[Mode, str] = {}
        if caret is not None:
            targets[Mode.CARET] = caret
        if line_last is not None:
            targets[Mode.LINE_LAST] = line_last
        return cls(
            targets=targets,
            active_modes=frozenset(targets),
            cap=cap,
            debounce_ms=debounce_ms,
            rhyme_types=_coerce_rhyme_types(rhyme_types),
        )

    def target_for(self, mode: Mode) -> str:
        return self.targets.get(mode, "")

    @property
    def raw_target(self) -> str:
        for mode in _ordered(self.active_modes):
            return self.target_for(mode)
        return ""

    def as_dict(self) -> Dict[str, Any]:
        return {
            "targets": {mode.value: value for mode, value in self.targets.items()},
            "activeModes": [mode.value for mode in _ordered(self.active_modes)],
            "rhymeTypes": [kind.value for kind in _ordered(self.rhyme_types)],
            "cap": self.cap,
            "debounceMs": self.debounce_ms,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "QueryRequest":
        return cls(
            targets=dict(payload.get("targets") or {}),
            active_modes=payload.get("activeModes") or (),
            cap=payload.get("cap"),
            debounce_ms=payload.get("debounceMs"),
            rhyme_types=_coerce_rhyme_types(payload.get("rhymeTypes")),
        )


@dataclass
class RhymeDebugCap:
    applied: bool
    limit: Optional[int] = None
    stage: Optional[str] = None


@dataclass
class RhymeDebugMeta:
    updated_at: float
    debounce_ms: Optional[int] = None


@dataclass
class RhymeSuggestionDebug:
    """Diagnostic side-channel describing how one mode's list was produced."""

    raw_target: str
    normalized_target: str
    active_modes: List[Mode]
    pool_count: int = 0
    filtered_count: int = 0
    rendered_count: int = 0
    stage_counts: Dict[str, int] = field(default_factory=dict)
    rejections: Dict[str, int] = field(default_factory=dict)
    cap: Optional[RhymeDebugCap] = None
    meta: Optional[RhymeDebugMeta] = None

    def record_stage(self, stage: str, count: int) -> None:
        self.stage_counts[stage] = int(count)

    def reject(self, reason: str, count: int = 1) -> None:
        if count <= 0:
            return
        self.rejections[reason] = self.rejections.get(reason, 0) + int(count)

    def as_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "rawTarget": self.raw_target,
            "normalizedTarget": self.normalized_target,
            "activeModes": [mode.value for mode in self.active_modes],
            "poolCount": self.pool_count,
            "filteredCount": self.filtered_count,
            "renderedCount": self.rendered_count,
            "stageCounts": dict(self.stage_counts),
            "rejections": dict(self.rejections),
        }
        if self.cap is not None:
            payload["cap"] = {
                "applied": self.cap.applied,
                "limit": self.cap.limit,
                "stage": self.cap.stage,
            }
        if self.meta is not None:
            payload["meta"] = {
                "updatedAt": self.meta.updated_at,
                "debounceMs": self.meta.debounce_ms,
            }
        return payload

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "RhymeSuggestionDebug":
        cap_payload = payload.get("cap")
        meta_payload = payload.get("meta")
        return cls(
            raw_target=str(payload["rawTarget"]),
            normalized_target=str(payload["normalizedTarget"]),
            active_modes=[Mode(mode) for mode in payload.get("activeModes", [])],
            pool_count=int(payload.get("poolCount", 0)),
            filtered_count=int(payload.get("filteredCount", 0)),
            rendered_count=int(payload.get("renderedCount", 0)),
            stage_counts={str(k): int(v) for k, v in (payload.get("stageCounts") or {}).items()},
            rejections={str(k): int(v) for k, v in (payload.get("rejections") or {}).items()},
            cap=RhymeDebugCap(
                applied=bool(cap_payload.get("applied")),
                limit=cap_payload.get("limit"),
                stage=cap_payload.get("stage"),
            )
            if isinstance(cap_payload, Mapping)
            else None,
            meta=RhymeDebugMeta(
                updated_at=float(meta_payload["updatedAt"]),
                debounce_ms=meta_payload.get("debounceMs"),
            )
            if isinstance(meta_payload, Mapping)
            else None,
        )


@dataclass
class QueryResult:
    """Per-mode suggestion lists plus their debug records."""

    results: Dict[Mode, List[str]] = field(default_factory=dict)
    debug: Dict[Mode, RhymeSuggestionDebug] = field(default_factory=dict)

    def words(self, mode: Mode | str) -> List[str]:
        return list(self.results.get(Mode(mode), []))

    def as_dict(self) -> Dict[str, Any]:
        return {
            "results": {mode.value: list(words) for mode, words in self.results.items()},
            "debug": {mode.value: record.as_dict() for mode, record in self.debug.items()},
        }

    @classmethod
    def from_dict(cls, payload: Any) -> "QueryResult":
        """Decode a wire payload, raising :class:`MalformedResponse` on bad shapes."""

        if not isinstance(payload, Mapping):
            raise MalformedResponse("Query result payload is not a mapping")
        try:
            results = {
                Mode(mode): [str(word) for word in words]
                for mode, words in (payload.get("results") or {}).items()
            }
            debug = {
                Mode(mode): RhymeSuggestionDebug.from_dict(record)
                for mode, record in (payload.get("debug") or {}).items()
            }
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise MalformedResponse(f"Query result payload could not be decoded: {exc}") from exc
        return cls(results=results, debug=debug)


__all__ = [
    "ALL_MODES",
    "ALL_RHYME_TYPES",
    "Mode",
    "QueryRequest",
    "QueryResult",
    "RhymeDebugCap",
    "RhymeDebugMeta",
    "RhymeSuggestionDebug",
    "RhymeType",
]
