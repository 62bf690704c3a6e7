"""Tests for discussion formats and the format registry."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from discussion_engine.models import Participant
from discussion_engine.phases import PHASE_ORDER
from discussion_engine.types import (
    DebatePhase,
    DiscussionMode,
    DiscussionType,
    ParticipantRole,
)
from formats import format_registry
from formats.free import FreeFormat
from formats.one_on_one import OneOnOneFormat
from formats.pros_cons import ProsConsFormat


def _roster(*roles: ParticipantRole) -> list[Participant]:
    return [
        Participant(
            user_id=f"u{i}",
            username=f"user{i}",
            role=role,
            joined_at=datetime(2026, 3, 1, tzinfo=timezone.utc),
        )
        for i, role in enumerate(roles)
    ]


def test_registry_knows_every_discussion_type() -> None:
    assert sorted(format_registry.list_formats()) == sorted(t.value for t in DiscussionType)
    for discussion_type in DiscussionType:
        assert format_registry.get_format(discussion_type).name == discussion_type.value


def test_registry_rejects_unknown_format() -> None:
    with pytest.raises(ValueError, match="Unknown format"):
        format_registry.get_format("oxford")


def test_format_descriptions_include_mode() -> None:
    descriptions = format_registry.get_format_descriptions()
    assert descriptions["pros-cons"]["mode"] == "structured"
    assert descriptions["free"]["mode"] == "legacy"
    assert descriptions["one-on-one"]["mode"] == "legacy"


def test_pros_cons_splits_capacity_between_sides() -> None:
    fmt = ProsConsFormat()
    assert fmt.mode == DiscussionMode.STRUCTURED
    assert fmt.side_capacity(ParticipantRole.PROS, 6) == 3
    assert fmt.side_capacity(ParticipantRole.CONS, None) is None
    assert fmt.uses_team_leaders()


def test_pros_cons_start_needs_both_sides() -> None:
    fmt = ProsConsFormat()
    with pytest.raises(ValueError):
        fmt.validate_start(_roster(ParticipantRole.PROS, ParticipantRole.PROS))
    fmt.validate_start(_roster(ParticipantRole.PROS, ParticipantRole.CONS))


def test_pros_cons_phases_mirror_phase_order() -> None:
    phases = ProsConsFormat().get_phases()
    assert [p.phase for p in phases] == list(PHASE_ORDER)
    closing = next(p for p in phases if p.phase == DebatePhase.CLOSING_CONS)
    assert closing.authors == ParticipantRole.CONS
    assert closing.team_leaders_only
    voting = next(p for p in phases if p.phase == DebatePhase.VOTING)
    assert voting.authors is None
    assert voting.timed


def test_one_on_one_allows_single_debater_per_side() -> None:
    fmt = OneOnOneFormat()
    assert fmt.mode == DiscussionMode.LEGACY
    assert fmt.side_capacity(ParticipantRole.PROS, 10) == 1
    with pytest.raises(ValueError):
        fmt.validate_start(_roster(ParticipantRole.PROS))
    fmt.validate_start(_roster(ParticipantRole.PROS, ParticipantRole.CONS))


def test_free_format_has_no_sides() -> None:
    fmt = FreeFormat()
    assert fmt.allowed_roles() == [ParticipantRole.PARTICIPANT]
    assert not fmt.uses_team_leaders()
    assert fmt.side_capacity(ParticipantRole.PARTICIPANT, 4) == 4
    assert fmt.get_phases() == []
    with pytest.raises(ValueError):
        fmt.validate_start([])
