"""Vibe policy and the admission filter built on it."""

from __future__ import annotations

from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Dict, List, Optional, Tuple

from ..config import Settings
from ..errors import InvalidRequest, PartyQueueError
from ..models import AudioProfile
from ..utils import log_debug, log_error
from .upstream import UpstreamClient

# Evaluation order; reasons are reported in this order.
DIMENSIONS: Tuple[str, ...] = ("energy", "valence", "tempo", "danceability")
UNIT_DIMENSIONS = frozenset({"energy", "valence", "danceability"})

# (subject, below-range wording, above-range wording)
_WORDING: Dict[str, Tuple[str, str, str]] = {
    "energy": ("Energy", "too mellow", "too intense"),
    "valence": ("Mood", "too sad", "too upbeat"),
    "tempo": ("Tempo", "too slow", "too fast"),
    "danceability": ("Track", "not danceable enough", "too dancey"),
}

Range = Tuple[float, float]


@dataclass(frozen=True)
class VibePolicy:
    preset_id: str
    enabled: bool
    label: str = ""
    dynamic: bool = False
    ranges: Dict[str, Range] = field(default_factory=dict)
    tolerances: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "presetId": self.preset_id,
            "label": self.label,
            "enabled": self.enabled,
            "mode": "dynamic" if self.dynamic else "static",
            "ranges": {dim: {"min": lo, "max": hi} for dim, (lo, hi) in self.ranges.items()},
            "tolerances": dict(self.tolerances),
        }


PRESETS: Dict[str, VibePolicy] = {
    "off": VibePolicy(preset_id="off", enabled=False, label="Anything goes"),
    "party": VibePolicy(
        preset_id="party",
        enabled=True,
        label="Party",
        ranges={
            "energy": (0.6, 1.0),
            "valence": (0.4, 1.0),
            "tempo": (100.0, 150.0),
            "danceability": (0.6, 1.0),
        },
    ),
    "chill": VibePolicy(
        preset_id="chill",
        enabled=True,
        label="Chill",
        ranges={"energy": (0.0, 0.5), "tempo": (60.0, 110.0), "danceability": (0.2, 0.7)},
    ),
    "focus": VibePolicy(
        preset_id="focus",
        enabled=True,
        label="Focus",
        ranges={"energy": (0.2, 0.6), "valence": (0.2, 0.7), "tempo": (70.0, 120.0)},
    ),
    "workout": VibePolicy(
        preset_id="workout",
        enabled=True,
        label="Workout",
        ranges={"energy": (0.7, 1.0), "tempo": (120.0, 180.0)},
    ),
    "match": VibePolicy(
        preset_id="match",
        enabled=True,
        label="Match now playing",
        dynamic=True,
        tolerances={"energy": 0.25, "valence": 0.3, "tempo": 20.0, "danceability": 0.25},
    ),
}


@dataclass
class VibeCheckResult:
    match: bool
    preset_id: str
    reasons: List[str] = field(default_factory=list)
    profile: Optional[AudioProfile] = None
    reference: Optional[AudioProfile] = None
    thresholds: Dict[str, Range] = field(default_factory=dict)
    note: Optional[str] = None

    @property
    def primary_reason(self) -> Optional[str]:
        return self.reasons[0] if self.reasons else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "match": self.match,
            "presetId": self.preset_id,
            "reasons": list(self.reasons),
            "primaryReason": self.primary_reason,
            "profile": self.profile.to_dict() if self.profile else None,
            "reference": self.reference.to_dict() if self.reference else None,
            "thresholds": {dim: {"min": lo, "max": hi} for dim, (lo, hi) in self.thresholds.items()},
            "note": self.note,
        }


def dynamic_thresholds(reference: AudioProfile, tolerances: Dict[str, float]) -> Dict[str, Range]:
    """Symmetric windows around the reference; unit dimensions clamp to [0, 1]."""
    thresholds: Dict[str, Range] = {}
    for dim in DIMENSIONS:
        if dim not in tolerances:
            continue
        value = getattr(reference, dim)
        tolerance = tolerances[dim]
        low, high = value - tolerance, value + tolerance
        if dim in UNIT_DIMENSIONS:
            low, high = max(0.0, low), min(1.0, high)
        else:
            low = max(0.0, low)
        thresholds[dim] = (round(low, 6), round(high, 6))
    return thresholds


def classify(
    profile: Optional[AudioProfile],
    policy: VibePolicy,
    reference: Optional[AudioProfile] = None,
) -> VibeCheckResult:
    """Compare ``profile`` against ``policy``. Missing data always matches."""
    if not policy.enabled:
        return VibeCheckResult(match=True, preset_id=policy.preset_id, note="Vibe check is off")
    if profile is None:
        return VibeCheckResult(
            match=True,
            preset_id=policy.preset_id,
            reference=reference,
            note="Audio features unavailable for this track; letting it through",
        )

    if policy.dynamic:
        if reference is None:
            return VibeCheckResult(
                match=True,
                preset_id=policy.preset_id,
                profile=profile,
                note="Nothing to compare against; letting it through",
            )
        thresholds = dynamic_thresholds(reference, policy.tolerances)
    else:
        thresholds = dict(policy.ranges)

    reasons = []
    for dim in DIMENSIONS:
        if dim not in thresholds:
            continue
        low, high = thresholds[dim]
        value = getattr(profile, dim)
        subject, below, above = _WORDING[dim]
        if value < low:
            reasons.append(f"{subject} is {below}")
        elif value > high:
            reasons.append(f"{subject} is {above}")

    return VibeCheckResult(
        match=not reasons,
        preset_id=policy.preset_id,
        reasons=reasons,
        profile=profile,
        reference=reference if policy.dynamic else None,
        thresholds=thresholds,
    )


def _number(value: Any, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidRequest(f"{name} must be a number")
    return float(value)


def _parse_ranges(raw: Dict[str, Any]) -> Dict[str, Range]:
    ranges: Dict[str, Range] = {}
    for dim, bounds in raw.items():
        if dim not in DIMENSIONS:
            raise InvalidRequest(f"Unknown vibe dimension '{dim}'")
        if not isinstance(bounds, dict):
            raise InvalidRequest(f"{dim} needs an object with 'min' and 'max'")
        if dim not in UNIT_DIMENSIONS and "max" not in bounds:
            raise InvalidRequest(f"{dim}.max is required")
        low = _number(bounds.get("min", 0.0), f"{dim}.min")
        high = _number(bounds.get("max", 1.0), f"{dim}.max")
        if low > high:
            raise InvalidRequest(f"{dim}.min must not exceed {dim}.max")
        if dim in UNIT_DIMENSIONS and (low < 0.0 or high > 1.0):
            raise InvalidRequest(f"{dim} bounds must lie within [0, 1]")
        if low < 0.0:
            raise InvalidRequest(f"{dim}.min must not be negative")
        ranges[dim] = (low, high)
    return ranges


def _parse_tolerances(raw: Dict[str, Any]) -> Dict[str, float]:
    tolerances: Dict[str, float] = {}
    for dim, value in raw.items():
        if dim not in DIMENSIONS:
            raise InvalidRequest(f"Unknown vibe dimension '{dim}'")
        tolerance = _number(value, f"tolerance.{dim}")
        if tolerance < 0:
            raise InvalidRequest(f"tolerance.{dim} must not be negative")
        tolerances[dim] = tolerance
    return tolerances


def build_policy(preset_id: str, custom_settings: Optional[Dict[str, Any]] = None) -> VibePolicy:
    """
    Resolve a preset, optionally overridden by ``custom_settings``.

    ``custom_settings`` accepts ``{"dynamic": bool, "tolerance": {dim: x}}``
    for dynamic policies and ``{dim: {"min": a, "max": b}}`` for static ones.
    The ``custom`` preset is built entirely from ``custom_settings``.
    """
    custom_settings = dict(custom_settings or {})
    if preset_id == "custom":
        if not custom_settings:
            raise InvalidRequest("The custom preset needs customSettings")
        base = VibePolicy(preset_id="custom", enabled=True, label="Custom")
    elif preset_id in PRESETS:
        base = PRESETS[preset_id]
        if not custom_settings:
            return base
        if not base.enabled:
            raise InvalidRequest("customSettings cannot be applied to the 'off' preset")
    else:
        raise InvalidRequest(f"Unknown vibe preset '{preset_id}'")

    dynamic = custom_settings.pop("dynamic", base.dynamic)
    if not isinstance(dynamic, bool):
        raise InvalidRequest("dynamic must be true or false")
    tolerance_raw = custom_settings.pop("tolerance", None)
    if dynamic:
        if custom_settings:
            raise InvalidRequest("Dynamic vibes take a tolerance, not fixed ranges")
        tolerances = dict(base.tolerances) or dict(PRESETS["match"].tolerances)
        if tolerance_raw is not None:
            if not isinstance(tolerance_raw, dict):
                raise InvalidRequest("tolerance needs an object keyed by dimension")
            tolerances.update(_parse_tolerances(tolerance_raw))
        return VibePolicy(
            preset_id=preset_id, enabled=True, label=base.label, dynamic=True, tolerances=tolerances
        )

    if tolerance_raw is not None:
        raise InvalidRequest("tolerance only applies to dynamic vibes")
    ranges = dict(base.ranges)
    ranges.update(_parse_ranges(custom_settings))
    if not ranges:
        raise InvalidRequest("A static vibe needs at least one dimension range")
    return VibePolicy(preset_id=preset_id, enabled=True, label=base.label, ranges=ranges)


class VibePolicyStore:
    """Holds the active policy; starts disabled."""

    def __init__(self, initial: Optional[VibePolicy] = None) -> None:
        self._policy = initial or PRESETS["off"]
        self._lock = Lock()

    def get(self) -> VibePolicy:
        with self._lock:
            return self._policy

    def set(self, preset_id: str, custom_settings: Optional[Dict[str, Any]] = None) -> VibePolicy:
        policy = build_policy(preset_id, custom_settings)
        with self._lock:
            self._policy = policy
        print(f"Vibe set to '{policy.preset_id}' ({'on' if policy.enabled else 'off'})")
        return policy


class VibeFilter:
    """Runs ``classify`` with profiles looked up through the upstream client."""

    def __init__(self, policies: VibePolicyStore, upstream: UpstreamClient, settings: Settings) -> None:
        self.policies = policies
        self._upstream = upstream
        self._settings = settings

    def check(self, track_id: str, policy: Optional[VibePolicy] = None) -> VibeCheckResult:
        policy = policy or self.policies.get()
        if not policy.enabled:
            return classify(None, policy)

        reference = None
        if policy.dynamic:
            reference_id = self._now_playing_id()
            if reference_id is None:
                return VibeCheckResult(
                    match=True,
                    preset_id=policy.preset_id,
                    note="Nothing is playing right now; letting it through",
                )
            reference = self._profile(reference_id)
            if reference is None:
                return VibeCheckResult(
                    match=True,
                    preset_id=policy.preset_id,
                    note="Could not read the current track's vibe; letting it through",
                )

        result = classify(self._profile(track_id), policy, reference)
        log_debug(self._settings, f"Vibe check {track_id}: match={result.match} reasons={result.reasons}")
        return result

    def _now_playing_id(self) -> Optional[str]:
        try:
            playing = self._upstream.currently_playing()
        except PartyQueueError as exc:
            log_error(exc.kind, "Now-playing lookup failed during vibe check", exception=exc)
            return None
        if not playing:
            return None
        return (playing.get("item") or {}).get("id")

    def _profile(self, track_id: str) -> Optional[AudioProfile]:
        try:
            return self._upstream.audio_features(track_id)
        except PartyQueueError as exc:
            log_error(exc.kind, f"Audio features lookup failed for {track_id}", exception=exc)
            return None
