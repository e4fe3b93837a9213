"""Tests for vibe policies, classification and the fail-open filter."""

from __future__ import annotations

from typing import Dict, Optional

import pytest

from conftest import PLAYING_ID, TRACK_ID
from partyqueue.core.vibe import (
    PRESETS,
    VibeFilter,
    VibePolicy,
    VibePolicyStore,
    build_policy,
    classify,
    dynamic_thresholds,
)
from partyqueue.errors import AuthError, InvalidRequest, UpstreamUnavailable
from partyqueue.models import AudioProfile


def profile(energy=0.8, valence=0.6, tempo=120.0, danceability=0.7) -> AudioProfile:
    return AudioProfile(energy=energy, valence=valence, tempo=tempo, danceability=danceability)


class StubUpstream:
    def __init__(self, profiles: Optional[Dict[str, object]] = None, playing: object = None) -> None:
        self.profiles = profiles or {}
        self.playing = playing
        self.lookups = []

    def currently_playing(self):
        if isinstance(self.playing, Exception):
            raise self.playing
        return self.playing

    def audio_features(self, track_id: str):
        self.lookups.append(track_id)
        value = self.profiles.get(track_id)
        if isinstance(value, Exception):
            raise value
        return value


def test_party_rejects_low_energy_as_too_mellow() -> None:
    result = classify(profile(energy=0.2), PRESETS["party"])
    assert result.match is False
    assert result.primary_reason == "Energy is too mellow"
    assert result.reasons == ["Energy is too mellow"]
    assert result.thresholds["energy"] == (0.6, 1.0)


def test_reasons_follow_fixed_dimension_order() -> None:
    result = classify(profile(energy=0.1, valence=0.1, tempo=200.0, danceability=0.1), PRESETS["party"])
    assert result.reasons == [
        "Energy is too mellow",
        "Mood is too sad",
        "Tempo is too fast",
        "Track is not danceable enough",
    ]
    assert result.primary_reason == "Energy is too mellow"


@pytest.mark.parametrize(
    "overrides,reason",
    [
        ({"energy": 0.9}, "Energy is too intense"),
        ({"valence": 0.95}, "Mood is too upbeat"),
        ({"tempo": 50.0}, "Tempo is too slow"),
        ({"danceability": 0.9}, "Track is too dancey"),
    ],
)
def test_upper_and_lower_wording(overrides, reason) -> None:
    policy = build_policy(
        "custom",
        {
            "energy": {"min": 0.2, "max": 0.8},
            "valence": {"min": 0.2, "max": 0.8},
            "tempo": {"min": 80, "max": 140},
            "danceability": {"min": 0.2, "max": 0.8},
        },
    )
    values = dict(energy=0.5, valence=0.5, tempo=100.0, danceability=0.5)
    values.update(overrides)
    assert classify(profile(**values), policy).reasons == [reason]


def test_bounds_are_inclusive() -> None:
    result = classify(profile(energy=0.6, valence=0.4, tempo=150.0, danceability=1.0), PRESETS["party"])
    assert result.match is True
    assert result.reasons == []


def test_unconfigured_dimensions_are_skipped() -> None:
    # workout only constrains energy and tempo
    result = classify(profile(energy=0.9, valence=0.0, tempo=130.0, danceability=0.0), PRESETS["workout"])
    assert result.match is True
    assert set(result.thresholds) == {"energy", "tempo"}


def test_dynamic_thresholds_clamp_unit_dimensions() -> None:
    reference = profile(energy=0.9, valence=0.1, tempo=170.0, danceability=0.5)
    thresholds = dynamic_thresholds(reference, {"energy": 0.25, "valence": 0.3, "tempo": 20.0, "danceability": 0.25})
    assert thresholds["energy"] == (0.65, 1.0)
    assert thresholds["valence"] == (0.0, 0.4)
    assert thresholds["tempo"] == (150.0, 190.0)
    assert thresholds["danceability"] == (0.25, 0.75)


def test_dynamic_classification_reports_reference_and_thresholds() -> None:
    reference = profile(energy=0.9)
    result = classify(profile(energy=0.5), PRESETS["match"], reference)
    assert result.match is False
    assert result.primary_reason == "Energy is too mellow"
    assert result.reference == reference
    assert result.to_dict()["thresholds"]["energy"] == {"min": 0.65, "max": 1.0}


def test_missing_candidate_profile_fails_open() -> None:
    result = classify(None, PRESETS["party"])
    assert result.match is True
    assert result.note


def test_dynamic_without_reference_fails_open() -> None:
    result = classify(profile(energy=0.0), PRESETS["match"], None)
    assert result.match is True
    assert result.note


def test_disabled_policy_always_matches() -> None:
    assert classify(profile(energy=0.0), PRESETS["off"]).match is True


def test_build_policy_errors() -> None:
    with pytest.raises(InvalidRequest):
        build_policy("rave")
    with pytest.raises(InvalidRequest):
        build_policy("custom")
    with pytest.raises(InvalidRequest):
        build_policy("custom", {"loudness": {"min": 0, "max": 1}})
    with pytest.raises(InvalidRequest):
        build_policy("custom", {"energy": {"min": 0.8, "max": 0.2}})
    with pytest.raises(InvalidRequest):
        build_policy("custom", {"energy": {"min": 0.0, "max": 1.5}})
    with pytest.raises(InvalidRequest):
        build_policy("custom", {"tempo": {"min": 90}})
    with pytest.raises(InvalidRequest):
        build_policy("custom", {"dynamic": True, "tolerance": {"energy": -0.1}})
    with pytest.raises(InvalidRequest):
        build_policy("off", {"energy": {"min": 0.1, "max": 0.2}})


def test_build_policy_overrides_preset_dimension() -> None:
    policy = build_policy("party", {"tempo": {"min": 90, "max": 160}})
    assert policy.ranges["tempo"] == (90.0, 160.0)
    assert policy.ranges["energy"] == (0.6, 1.0)
    # Presets themselves stay untouched.
    assert PRESETS["party"].ranges["tempo"] == (100.0, 150.0)


def test_build_custom_dynamic_policy() -> None:
    policy = build_policy("custom", {"dynamic": True, "tolerance": {"tempo": 10}})
    assert policy.dynamic is True
    assert policy.tolerances["tempo"] == 10.0
    assert policy.tolerances["energy"] == PRESETS["match"].tolerances["energy"]


@pytest.mark.parametrize("flag", ["false", "true", 0, 1, None])
def test_dynamic_flag_must_be_boolean(flag) -> None:
    with pytest.raises(InvalidRequest, match="dynamic must be true or false"):
        build_policy("custom", {"dynamic": flag, "energy": {"min": 0.2, "max": 0.4}})


def test_explicit_static_flag_accepts_ranges() -> None:
    policy = build_policy("custom", {"dynamic": False, "energy": {"min": 0.2, "max": 0.4}})
    assert policy.dynamic is False
    assert policy.ranges == {"energy": (0.2, 0.4)}


def test_policy_store_starts_off_and_switches() -> None:
    store = VibePolicyStore()
    assert store.get().enabled is False
    assert store.set("party").preset_id == "party"
    assert store.get() is PRESETS["party"]


def test_filter_uses_candidate_profile(settings) -> None:
    upstream = StubUpstream(profiles={TRACK_ID: profile(energy=0.2)})
    store = VibePolicyStore(PRESETS["party"])
    result = VibeFilter(store, upstream, settings).check(TRACK_ID)
    assert result.match is False
    assert upstream.lookups == [TRACK_ID]


@pytest.mark.parametrize("failure", [UpstreamUnavailable("down", 503), AuthError(), None])
def test_filter_fails_open_when_candidate_lookup_fails(settings, failure) -> None:
    upstream = StubUpstream(profiles={TRACK_ID: failure})
    result = VibeFilter(VibePolicyStore(PRESETS["party"]), upstream, settings).check(TRACK_ID)
    assert result.match is True
    assert result.note


def test_dynamic_filter_fails_open_when_nothing_is_playing(settings) -> None:
    upstream = StubUpstream(profiles={TRACK_ID: profile(energy=0.0)}, playing=None)
    result = VibeFilter(VibePolicyStore(PRESETS["match"]), upstream, settings).check(TRACK_ID)
    assert result.match is True
    assert upstream.lookups == []


def test_dynamic_filter_fails_open_when_now_playing_errors(settings) -> None:
    upstream = StubUpstream(playing=UpstreamUnavailable("down"))
    result = VibeFilter(VibePolicyStore(PRESETS["match"]), upstream, settings).check(TRACK_ID)
    assert result.match is True


def test_dynamic_filter_fails_open_when_reference_profile_missing(settings) -> None:
    upstream = StubUpstream(
        profiles={PLAYING_ID: UpstreamUnavailable("down"), TRACK_ID: profile(energy=0.0)},
        playing={"item": {"id": PLAYING_ID}},
    )
    result = VibeFilter(VibePolicyStore(PRESETS["match"]), upstream, settings).check(TRACK_ID)
    assert result.match is True
    assert upstream.lookups == [PLAYING_ID]


def test_dynamic_filter_compares_against_now_playing(settings) -> None:
    upstream = StubUpstream(
        profiles={PLAYING_ID: profile(tempo=128.0), TRACK_ID: profile(tempo=170.0)},
        playing={"item": {"id": PLAYING_ID}},
    )
    result = VibeFilter(VibePolicyStore(PRESETS["match"]), upstream, settings).check(TRACK_ID)
    assert result.match is False
    assert result.reasons == ["Tempo is too fast"]
    assert result.thresholds["tempo"] == (108.0, 148.0)
    assert result.reference == profile(tempo=128.0)


def test_policy_to_dict_shape() -> None:
    data = PRESETS["party"].to_dict()
    assert data["presetId"] == "party"
    assert data["mode"] == "static"
    assert data["ranges"]["energy"] == {"min": 0.6, "max": 1.0}
    assert isinstance(VibePolicy(preset_id="x", enabled=False).to_dict()["ranges"], dict)
