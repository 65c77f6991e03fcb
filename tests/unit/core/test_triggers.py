"""Tests for trigger policies."""

from __future__ import annotations

import pytest

from pipewarden.config.models import TriggerPolicyConfig, TriggersConfig
from pipewarden.core.models import TriggerContext, TriggerEvent
from pipewarden.triggers import TriggerPolicy, ref_matches


class TestRefMatches:
    @pytest.mark.parametrize(
        "ref, patterns, expected",
        [
            ("main", ["main"], True),
            ("feature/main", ["main"], False),
            ("feature/login", ["feature/**"], True),
            ("feature/a/b", ["feature/**"], True),
            ("develop", ["main", "develop"], True),
            ("v1.2.3", ["v*.*.*"], True),
            ("v1.2", ["v*.*.*"], False),
            ("", ["main"], False),
            ("main", [], False),
        ],
    )
    def test_patterns(self, ref: str, patterns: list, expected: bool) -> None:
        assert ref_matches(ref, patterns) is expected


class TestTriggerPolicy:
    """Tests for TriggerPolicy.should_run with the default policies."""

    def test_security_push_branches(self) -> None:
        policy = TriggerPolicy(TriggersConfig().security)
        assert policy.should_run(TriggerContext(TriggerEvent.PUSH, ref_name="develop"))
        assert policy.should_run(TriggerContext(TriggerEvent.PUSH, ref_name="feature/x"))
        assert not policy.should_run(TriggerContext(TriggerEvent.PUSH, ref_name="hotfix/x"))

    def test_pull_request_uses_base_branch(self, pr_trigger: TriggerContext) -> None:
        policy = TriggerPolicy(TriggersConfig().security)
        assert policy.should_run(pr_trigger)
        other = TriggerContext(
            TriggerEvent.PULL_REQUEST, ref_name="9/merge", pr_number=9, base_ref="feature/x"
        )
        assert not policy.should_run(other)

    def test_schedule_and_dispatch(self) -> None:
        security = TriggerPolicy(TriggersConfig().security)
        release = TriggerPolicy(TriggersConfig().release)
        assert security.should_run(TriggerContext(TriggerEvent.SCHEDULE))
        assert not release.should_run(TriggerContext(TriggerEvent.SCHEDULE))
        assert release.should_run(TriggerContext(TriggerEvent.WORKFLOW_DISPATCH))

    def test_release_tags(self) -> None:
        policy = TriggerPolicy(TriggersConfig().release)
        assert policy.should_run(
            TriggerContext(TriggerEvent.PUSH, ref_name="v2.0.0", is_tag=True)
        )
        assert not policy.should_run(
            TriggerContext(TriggerEvent.PUSH, ref_name="nightly", is_tag=True)
        )

    def test_dispatch_disabled(self) -> None:
        policy = TriggerPolicy(TriggerPolicyConfig(workflow_dispatch=False))
        assert not policy.should_run(TriggerContext(TriggerEvent.WORKFLOW_DISPATCH))
